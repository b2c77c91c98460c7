import subprocess
from pathlib import Path

import pytest

from quire.asset_processors import (
    CSSProcessor,
    JSProcessor,
    StaticAssetProcessor,
    create_default_registry,
)
from quire.assets import AssetPipeline
from quire.build import BuildError, BuildReport, build_site
from quire.output import OutputWriter, RenderedDocument

POST_LAYOUT = (
    "<!doctype html>\n<html>\n<head><title>{{ title }}</title></head>\n"
    "<body>\n  <article>{{ content }}</article>\n</body>\n</html>\n"
)


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def make_project(root: Path) -> Path:
    write(root / "layouts" / "post.html", POST_LAYOUT)
    write(root / "posts" / "a.md", "---\ntitle: A\n---\n# Hi\n")
    write(root / "posts" / "b.md", "---\ntitle: B\n---\n# Hi\n")
    write(
        root / "pages" / "index.html",
        "<ul>\n{% for post in posts %}  <li>{{ post.title }} {{ post.url }}</li>\n{% endfor %}</ul>\n",
    )
    return root


@pytest.fixture(autouse=True)
def no_external_tools(monkeypatch):
    monkeypatch.setattr("quire.asset_processors.find_executable", lambda name, root=None: None)


def test_asset_pipeline_processes_each_kind(tmp_path):
    project = tmp_path / "site"
    write(project / "assets" / "css" / "site.css", "body {\n  margin: 0;\n}\n")
    write(project / "assets" / "js" / "app.js", "function test() {\n  return 1 + 1;\n}\n")
    logo = project / "assets" / "images" / "logo.png"
    logo.parent.mkdir(parents=True)
    logo.write_bytes(b"\x89PNG\x00\x01\x02")

    writer = OutputWriter(tmp_path / "dist")
    pipeline = AssetPipeline(project, writer)
    assert [entry.kind for entry in pipeline.entries()] == ["css", "other", "js"]

    written = pipeline.run()
    dist = tmp_path / "dist" / "assets"
    assert len(written) == 3
    assert (dist / "css" / "site.css").read_text(encoding="utf-8") == "body{margin:0}"
    assert (dist / "js" / "app.js").read_text(encoding="utf-8") == "function test(){return 1+1;}"
    assert (dist / "images" / "logo.png").read_bytes() == b"\x89PNG\x00\x01\x02"


def test_registry_picks_processor_by_priority(tmp_path):
    registry = create_default_registry(tmp_path, OutputWriter(tmp_path / "dist"))
    assert isinstance(registry.get_processor(Path("a.css")), CSSProcessor)
    assert isinstance(registry.get_processor(Path("a.JS")), JSProcessor)
    assert isinstance(registry.get_processor(Path("a.woff2")), StaticAssetProcessor)


def test_failing_asset_is_skipped_and_recorded(monkeypatch, tmp_path):
    project = tmp_path / "site"
    write(project / "assets" / "app.js", "function (")
    write(project / "assets" / "robots.txt", "User-agent: *\n")

    monkeypatch.setattr(
        "quire.asset_processors.find_executable",
        lambda name, root=None: "/usr/bin/terser" if name == "terser" else None,
    )

    def fake_run(cmd, capture_output=False, text=False):
        return subprocess.CompletedProcess(cmd, 1, stdout="", stderr="SyntaxError: Unexpected token")

    monkeypatch.setattr("quire.asset_processors.subprocess.run", fake_run)

    writer = OutputWriter(tmp_path / "dist")
    report = BuildReport(output_dir=writer.output_dir)
    AssetPipeline(project, writer).run(report)

    assert [failure.stage for failure in report.failures] == ["assets"]
    assert report.failures[0].path == project / "assets" / "app.js"
    assert "terser" in report.failures[0].message
    assert report.assets == [(tmp_path / "dist" / "assets" / "robots.txt").resolve()]
    assert not (tmp_path / "dist" / "assets" / "app.js").exists()


def test_tailwind_output_is_purged_against_html(monkeypatch, tmp_path):
    project = tmp_path / "site"
    css = write(project / "assets" / "site.css", "@tailwind utilities;\n")
    writer = OutputWriter(tmp_path / "dist")
    writer.write(RenderedDocument.for_url("/", '<div class="flex used">x</div>'))

    monkeypatch.setattr(
        "quire.asset_processors.find_executable",
        lambda name, root=None: "/usr/bin/tailwindcss" if name == "tailwindcss" else None,
    )
    calls = []

    def fake_run(cmd, capture_output=False, text=False):
        calls.append(cmd)
        return subprocess.CompletedProcess(
            cmd, 0, stdout=".flex{display:flex}.used{color:red}.nope{color:blue}", stderr=""
        )

    monkeypatch.setattr("quire.asset_processors.subprocess.run", fake_run)
    AssetPipeline(project, writer).run()

    assert calls[0][:3] == ["/usr/bin/tailwindcss", "-i", str(css)]
    out = (tmp_path / "dist" / "assets" / "site.css").read_text(encoding="utf-8")
    assert ".flex{display:flex}" in out
    assert ".used{color:red}" in out
    assert ".nope" not in out


def test_tailwind_directives_without_cli_pass_through(tmp_path):
    project = tmp_path / "site"
    write(project / "assets" / "site.css", "@tailwind utilities;\nbody { margin: 0 }\n")
    writer = OutputWriter(tmp_path / "dist")
    report = BuildReport(output_dir=writer.output_dir)
    AssetPipeline(project, writer).run(report)
    assert report.ok
    assert "body{margin:0}" in (tmp_path / "dist" / "assets" / "site.css").read_text(
        encoding="utf-8"
    )


def test_build_site_writes_posts_and_pages(tmp_path):
    project = make_project(tmp_path / "site")
    report = build_site(project)

    dist = project / "dist"
    assert report.ok
    assert report.output_dir == dist
    assert [post.url for post in report.posts] == ["/blog/a", "/blog/b"]
    for slug, title in (("a", "A"), ("b", "B")):
        html = (dist / "blog" / slug / "index.html").read_text(encoding="utf-8")
        assert "<h1>Hi</h1>" in html
        assert f"<title>{title}</title>" in html
        assert "\n" not in html

    index = (dist / "index.html").read_text(encoding="utf-8")
    assert "<ul><li>A /blog/a</li><li>B /blog/b</li></ul>" in index


def test_post_metadata_has_computed_keys(tmp_path):
    project = make_project(tmp_path / "site")
    report = build_site(project)
    metadata = report.posts[0].metadata
    assert metadata["title"] == "A"
    assert metadata["url"] == "/blog/a"
    assert "<h1>Hi</h1>" in metadata["content"]
    assert {"createdAt", "updatedAt"} <= set(metadata)


def test_filters_from_config_module(tmp_path):
    project = make_project(tmp_path / "site")
    write(project / "config.py", "def shout(value):\n    return value.upper() + '!'\n\nfilters = {'upper': shout}\n")
    write(project / "layouts" / "post.html", "<h2>{{ title | upper }}</h2>{{ content }}")
    build_site(project)
    html = (project / "dist" / "blog" / "a" / "index.html").read_text(encoding="utf-8")
    assert "<h2>A!</h2>" in html


def test_malformed_post_is_skipped(tmp_path):
    project = make_project(tmp_path / "site")
    write(project / "posts" / "bad.md", "---\ntitle: [oops\n---\nbody\n")
    report = build_site(project)

    assert not report.ok
    assert [(f.stage, f.path.name) for f in report.failures] == [("posts", "bad.md")]
    assert [post.slug for post in report.posts] == ["a", "b"]
    assert not (project / "dist" / "blog" / "bad").exists()
    index = (project / "dist" / "index.html").read_text(encoding="utf-8")
    assert "bad" not in index


def test_reserved_key_collision_skips_post(tmp_path):
    project = make_project(tmp_path / "site")
    write(project / "posts" / "c.md", "---\nurl: /elsewhere\n---\nbody\n")
    report = build_site(project)
    assert [f.path.name for f in report.failures] == ["c.md"]
    assert "url" in report.failures[0].message
    assert len(report.posts) == 2


def test_broken_page_template_is_skipped(tmp_path):
    project = make_project(tmp_path / "site")
    write(project / "pages" / "about.html", "{{ title | nope }}")
    report = build_site(project)
    assert [(f.stage, f.path.name) for f in report.failures] == [("pages", "about.html")]
    assert (project / "dist" / "index.html").exists()
    assert not (project / "dist" / "about").exists()


def test_missing_post_layout_aborts(tmp_path):
    project = make_project(tmp_path / "site")
    (project / "layouts" / "post.html").unlink()
    with pytest.raises(BuildError) as exc_info:
        build_site(project)
    assert exc_info.value.stage == "posts"
    assert exc_info.value.source_path == project / "layouts" / "post.html"


def test_layout_not_required_without_posts(tmp_path):
    project = tmp_path / "site"
    write(project / "pages" / "about.html", "<p>About</p>")
    report = build_site(project)
    assert report.ok
    assert (project / "dist" / "about" / "index.html").read_text(encoding="utf-8") == "<p>About</p>"


def test_broken_config_module_aborts(tmp_path):
    project = make_project(tmp_path / "site")
    write(project / "config.py", "raise RuntimeError('boom')\n")
    with pytest.raises(BuildError) as exc_info:
        build_site(project)
    assert exc_info.value.stage == "config"
    assert "boom" in exc_info.value.message


def test_invalid_settings_abort(tmp_path):
    project = make_project(tmp_path / "site")
    write(project / "quire.yaml", "output_dir: [\n")
    with pytest.raises(BuildError) as exc_info:
        build_site(project)
    assert exc_info.value.stage == "config"


def test_settings_change_output_and_prefix(tmp_path):
    project = make_project(tmp_path / "site")
    write(project / "quire.yaml", "output_dir: public\nblog_prefix: /posts/\n")
    report = build_site(project)
    assert report.output_dir == project / "public"
    assert (project / "public" / "posts" / "a" / "index.html").exists()


def test_output_override(tmp_path):
    project = make_project(tmp_path / "site")
    out = tmp_path / "elsewhere"
    build_site(project, output_dir_override=out)
    assert (out / "blog" / "a" / "index.html").exists()
    assert not (project / "dist").exists()


def test_css_purge_uses_built_html(tmp_path):
    project = make_project(tmp_path / "site")
    write(project / "pages" / "index.html", '<div class="hero">Hi</div>')
    write(project / "assets" / "css" / "site.css", ".hero { color: red }\n.sidebar { color: blue }\n")
    build_site(project)
    css = (project / "dist" / "assets" / "css" / "site.css").read_text(encoding="utf-8")
    assert ".hero" in css
    assert ".sidebar" not in css


def test_rebuild_is_clean_and_repeatable(tmp_path):
    project = make_project(tmp_path / "site")
    write(project / "assets" / "css" / "site.css", "ul { margin: 0 }\n")
    build_site(project)
    dist = project / "dist"
    first = {p.relative_to(dist): p.read_bytes() for p in dist.rglob("*") if p.is_file()}

    write(dist / "stale.txt", "old")
    build_site(project)
    second = {p.relative_to(dist): p.read_bytes() for p in dist.rglob("*") if p.is_file()}
    assert second == first


def test_broken_script_is_rejected_without_terser(tmp_path):
    project = tmp_path / "site"
    write(project / "assets" / "app.js", "function (")
    write(project / "assets" / "ok.js", "export const answer = 42;\n")
    writer = OutputWriter(tmp_path / "dist")
    report = BuildReport(output_dir=writer.output_dir)
    AssetPipeline(project, writer).run(report)

    assert [(f.stage, f.path.name) for f in report.failures] == [("assets", "app.js")]
    assert "syntax error" in report.failures[0].message
    assert not (tmp_path / "dist" / "assets" / "app.js").exists()
    assert (tmp_path / "dist" / "assets" / "ok.js").exists()


def test_posts_without_frontmatter(tmp_path):
    project = tmp_path / "site"
    write(project / "layouts" / "post.html", POST_LAYOUT)
    write(project / "posts" / "a.md", "# Hi")
    write(project / "posts" / "b.md", "# Hi")
    report = build_site(project)

    assert report.ok
    for slug in ("a", "b"):
        html = (project / "dist" / "blog" / slug / "index.html").read_text(encoding="utf-8")
        assert "<h1>Hi</h1>" in html
        assert html.startswith("<!DOCTYPE html><html><head>")
        assert "\n" not in html
    assert [post.metadata["url"] for post in report.posts] == ["/blog/a", "/blog/b"]


@pytest.mark.parametrize("output_dir", [".", ".."])
def test_output_dir_containing_project_is_refused(tmp_path, output_dir):
    project = make_project(tmp_path / "site")
    write(project / "quire.yaml", f"output_dir: '{output_dir}'\n")
    with pytest.raises(BuildError) as exc_info:
        build_site(project)
    assert exc_info.value.stage == "clean"
    assert (project / "posts" / "a.md").exists()
    assert (project / "layouts" / "post.html").exists()


def test_output_override_cannot_be_project_root(tmp_path):
    project = make_project(tmp_path / "site")
    with pytest.raises(BuildError) as exc_info:
        build_site(project, output_dir_override=project)
    assert exc_info.value.stage == "clean"
    assert (project / "posts" / "b.md").exists()


def test_unreadable_settings_abort(monkeypatch, tmp_path):
    project = make_project(tmp_path / "site")

    def denied(root):
        raise PermissionError(13, "Permission denied", str(root / "quire.yaml"))

    monkeypatch.setattr("quire.build.load_settings", denied)
    with pytest.raises(BuildError) as exc_info:
        build_site(project)
    assert exc_info.value.stage == "config"
    assert exc_info.value.source_path == project / "quire.yaml"
    assert exc_info.value.message == "Permission denied"
