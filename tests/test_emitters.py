import json

import pytest

from site_factory.content_generator import ContentGenerator
from site_factory.emitters import (
    INSTALLABLE_WEB_APP,
    NATIVE_MOBILE_A,
    NATIVE_MOBILE_B,
    TARGET_KINDS,
    WEB,
    EmissionService,
    emit,
)
from site_factory.site_model import Element
from site_factory.utils import ErrorKind, InvalidInputError, UnsupportedTargetError


@pytest.fixture
def generated_site(site):
    ContentGenerator().generate(site)
    return site


@pytest.mark.parametrize("target", TARGET_KINDS)
def test_emit_is_deterministic(generated_site, target):
    first = emit(generated_site, target)
    second = emit(generated_site, target)
    assert first.id == second.id
    assert first.flat_files() == second.flat_files()
    assert first.checksum == second.checksum


@pytest.mark.parametrize("target", TARGET_KINDS)
def test_emit_does_not_mutate_the_site(generated_site, target):
    before = generated_site.to_dict()
    emit(generated_site, target)
    assert generated_site.to_dict() == before


def test_web_bundle_files(generated_site):
    artifact = emit(generated_site, WEB)
    files = artifact.flat_files()

    assert {"index.html", "styles.css", "script.js", "package.json", "README.md"} <= set(files)
    html, css, js = files["index.html"], files["styles.css"], files["script.js"]
    assert '<h1 id="el-heading" class="heading-element">Shop handmade jewelry online</h1>' in html
    assert "#el-cta { position: absolute; left: 40px; top: 200px; }" in css
    assert f"--primary: {generated_site.design_tokens.primary_color};" in css
    assert js.count("bindClick(") == 1 + 1  # helper definition + one button
    assert json.loads(files["package.json"])["version"] == "1.0.0"
    assert artifact.source_site_model_id == generated_site.id


def test_click_handler_per_button(generated_site):
    generated_site.elements.append(Element(id="el-second", type="button", content="More", position=(40, 360)))
    js = emit(generated_site, WEB).flat_files()["script.js"]
    assert '"el-cta"' in js and '"el-second"' in js


def test_ids_that_are_not_css_identifiers_use_attribute_selectors(generated_site):
    generated_site.elements.append(Element(id="2nd promo", type="card", content="Sale", position=(40, 360)))
    css = emit(generated_site, WEB).flat_files()["styles.css"]
    assert '[id="2nd promo"] { position: absolute; left: 40px; top: 360px; }' in css
    assert "#2nd promo" not in css


def test_content_is_html_escaped(generated_site):
    generated_site.elements[0].content = '<script>alert("x")</script>'
    html = emit(generated_site, WEB).flat_files()["index.html"]
    assert "<script>alert" not in html
    assert "&lt;script&gt;alert(&quot;x&quot;)&lt;/script&gt;" in html


def test_unknown_element_type_renders_generic_block(generated_site):
    generated_site.elements.append(Element(id="el-video", type="video", content="clip", position=(0, 0)))
    html = emit(generated_site, WEB).flat_files()["index.html"]
    assert '<div id="el-video" class="video-element">clip</div>' in html


@pytest.mark.parametrize("target", TARGET_KINDS)
def test_empty_elements_still_produce_an_artifact(generated_site, target):
    generated_site.elements = []
    artifact = emit(generated_site, target)
    assert artifact.flat_files()


def test_react_native_layout(generated_site):
    files = emit(generated_site, NATIVE_MOBILE_A).flat_files()
    for path in ("package.json", "app.json", "App.js", "index.js", "src/screens/HomeScreen.js",
                 "src/styles/theme.js", "android/.keep", "ios/.keep", "BUILD.md"):
        assert path in files
    assert "HomeScreen" in files["App.js"] and "theme" in files["App.js"]
    app_json = json.loads(files["app.json"])
    assert app_json["expo"]["android"]["package"].startswith("com.sitefactory.")


def test_flutter_layout(generated_site):
    files = emit(generated_site, NATIVE_MOBILE_B).flat_files()
    for path in ("pubspec.yaml", "lib/main.dart", "lib/utils/theme.dart", "lib/screens/home_screen.dart",
                 "android/.keep", "ios/.keep", "BUILD.md"):
        assert path in files
    assert "AppTheme.lightTheme" in files["lib/main.dart"]
    assert "HomeScreen()" in files["lib/main.dart"]


def test_installable_web_app_layout(generated_site):
    files = emit(generated_site, INSTALLABLE_WEB_APP).flat_files()
    manifest = json.loads(files["manifest.json"])

    assert manifest["start_url"] == "/"
    assert manifest["display"] == "standalone"
    assert manifest["theme_color"] == generated_site.design_tokens.primary_color
    assert [icon["sizes"] for icon in manifest["icons"]] == ["72x72", "192x192", "512x512"]
    assert '<link rel="manifest" href="manifest.json">' in files["index.html"]
    assert "serviceWorker" in files["index.html"]
    assert "caches.open" in files["sw.js"]
    assert "icons/.keep" in files


def test_unknown_target_is_unsupported(generated_site):
    with pytest.raises(UnsupportedTargetError) as exc:
        emit(generated_site, "desktop")
    assert exc.value.kind == ErrorKind.UNSUPPORTED_TARGET


def test_invalid_site_is_rejected_before_emitting(generated_site):
    generated_site.pages = []
    with pytest.raises(InvalidInputError):
        emit(generated_site, WEB)


def test_artifact_files_are_read_only(generated_site):
    artifact = emit(generated_site, WEB)
    with pytest.raises(TypeError):
        artifact.files["index.html"] = "changed"


def test_emission_service_persists_once(generated_site, ledger):
    service = EmissionService(ledger)
    artifact = service.emit(generated_site, WEB)
    service.emit(generated_site, WEB)

    assert len(ledger.list_artifacts(generated_site.id)) == 1
    stored = ledger.get_artifact(artifact.id)
    assert stored.flat_files() == artifact.flat_files()
