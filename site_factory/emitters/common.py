"""Rendering helpers shared by the web and installable-web-app emitters."""

from __future__ import annotations

import json
import re
from typing import Any, List

from ..site_model import Element, SiteModel
from ..utils import slugify


def escape_html(s: str) -> str:
    """Escape text for HTML content and attribute values."""
    if not s:
        return ""
    return (
        str(s)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def escape_js(s: str) -> str:
    """Quote a string as a JS/JSON literal."""
    return json.dumps(s or "", ensure_ascii=False)


def to_json(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, indent=2, sort_keys=False) + "\n"


def project_slug(site: SiteModel) -> str:
    return slugify(site.seo.title or site.id, fallback=site.id)


def display_name(site: SiteModel) -> str:
    return (site.seo.title or site.block_text("headline") or "My Site").strip()


def css_class(el: Element) -> str:
    return f"{slugify(el.type, fallback='block')}-element"


_PLAIN_CSS_ID = re.compile(r"-?[A-Za-z_][A-Za-z0-9_-]*")


def css_id_selector(element_id: str) -> str:
    """Selector for an element id; ids that are not plain CSS identifiers use an attribute selector."""
    if _PLAIN_CSS_ID.fullmatch(element_id):
        return f"#{element_id}"
    quoted = element_id.replace("\\", "\\\\").replace('"', '\\"')
    return f'[id="{quoted}"]'


def render_element(el: Element, heading_tag: str = "h1") -> str:
    """One element as markup. id attribute links it to its positioned CSS rule."""
    content = escape_html(el.content)
    attrs = f'id="{escape_html(el.id)}" class="{css_class(el)}"'
    if el.type == "text":
        return f"<p {attrs}>{content}</p>"
    if el.type == "heading":
        return f"<{heading_tag} {attrs}>{content}</{heading_tag}>"
    if el.type == "button":
        return f'<button type="button" {attrs} data-action="cta">{content}</button>'
    if el.type == "image":
        src = content or "https://via.placeholder.com/300x200"
        return f'<img {attrs} src="{src}" alt="">'
    if el.type == "card":
        return f'<div {attrs}><h3>{content}</h3></div>'
    return f"<div {attrs}>{content}</div>"


def render_nav(site: SiteModel) -> str:
    links = []
    for page in site.pages:
        anchor = slugify(page, fallback="page")
        links.append(f'<a href="#{anchor}">{escape_html(page)}</a>')
    return "\n      ".join(links)


def render_page_sections(site: SiteModel) -> str:
    """An empty anchor section per page so the nav links resolve."""
    return "\n    ".join(
        f'<section id="{slugify(page, fallback="page")}" class="page-section" data-page="{escape_html(page)}"></section>'
        for page in site.pages
    )


def render_content_blocks(site: SiteModel) -> str:
    parts = []
    for block_id in sorted(site.content_blocks):
        block = site.content_blocks[block_id]
        if block.kind == "features":
            items = [line.lstrip("-* ").strip() for line in block.text.splitlines() if line.strip()]
            lis = "".join(f"<li>{escape_html(i)}</li>" for i in items)
            parts.append(f'<ul class="block block-features">{lis}</ul>')
        elif block.kind in ("headline", "cta"):
            # Already carried by the heading/button elements
            continue
        else:
            parts.append(f'<p class="block block-{escape_html(block.kind)}">{escape_html(block.text)}</p>')
    return "\n      ".join(parts)


# Per-type style rules; each element additionally gets an absolute-position rule by id.
TYPE_STYLES = {
    "text": "font-size: 16px;",
    "heading": "font-size: 32px; font-weight: bold; font-family: var(--heading-font);",
    "button": (
        "padding: 10px 20px; background: var(--primary); color: #fff; border: none; "
        "border-radius: 4px; cursor: pointer;"
    ),
    "image": "max-width: 100%; height: auto;",
    "card": (
        "padding: 20px; border: 1px solid #ddd; border-radius: 8px; background: #fff; "
        "box-shadow: 0 2px 4px rgba(0,0,0,0.1);"
    ),
}
GENERIC_STYLE = "display: block;"


def render_stylesheet(site: SiteModel) -> str:
    t = site.design_tokens
    base = f"""* {{
  margin: 0;
  padding: 0;
  box-sizing: border-box;
}}

:root {{
  --primary: {t.primary_color};
  --secondary: {t.secondary_color};
  --accent: {t.accent_color};
  --heading-font: {t.heading_font};
  --body-font: {t.body_font};
  --space: {t.spacing_scale}rem;
}}

body {{
  font-family: var(--body-font);
  line-height: 1.6;
  color: var(--secondary);
}}

nav {{
  display: flex;
  gap: var(--space);
  padding: var(--space);
  background: var(--primary);
}}

nav a {{
  color: #fff;
  text-decoration: none;
}}

#app {{
  position: relative;
  max-width: 1200px;
  min-height: 480px;
  margin: 0 auto;
  padding: calc(var(--space) * 1.25);
}}

.block {{
  margin-top: var(--space);
}}
"""
    rules: List[str] = []
    seen_types: List[str] = []
    for el in site.elements:
        if el.type not in seen_types:
            seen_types.append(el.type)
    for el_type in seen_types:
        el_class = css_class(Element(id="", type=el_type))
        rules.append(f".{el_class} {{ {TYPE_STYLES.get(el_type, GENERIC_STYLE)} }}")
    for el in site.elements:
        x, y = el.position
        rules.append(f"{css_id_selector(el.id)} {{ position: absolute; left: {x}px; top: {y}px; }}")
    return base + ("\n" + "\n".join(rules) + "\n" if rules else "")


def render_click_handlers(site: SiteModel) -> str:
    """One click handler per button element."""
    handlers = []
    for el in site.elements:
        if el.type != "button":
            continue
        handlers.append(
            f"""  bindClick({escape_js(el.id)}, function () {{
    window.location.hash = 'contact';
  }});"""
        )
    return "\n".join(handlers)


def render_script(site: SiteModel) -> str:
    handlers = render_click_handlers(site)
    return f"""// Generated by site-factory
function bindClick(id, handler) {{
  var el = document.getElementById(id);
  if (el) {{
    el.addEventListener('click', handler);
  }}
}}

document.addEventListener('DOMContentLoaded', function () {{
{handlers}
}});
"""
