"""Static website bundle: index.html, styles.css, script.js, package.json, README.md."""

from __future__ import annotations

from typing import Any, Dict

from ..site_model import SiteModel
from .common import (
    display_name,
    escape_html,
    project_slug,
    render_content_blocks,
    render_element,
    render_nav,
    render_page_sections,
    render_script,
    render_stylesheet,
    to_json,
)


def render_index_html(site: SiteModel, head_extra: str = "", body_extra: str = "", script_name: str = "script.js") -> str:
    title = escape_html(display_name(site))
    description = escape_html(site.seo.description)
    keywords = escape_html(", ".join(site.seo.keywords))
    elements = "\n      ".join(render_element(el) for el in site.elements)
    blocks = render_content_blocks(site)
    head_lines = f"\n  {head_extra}" if head_extra else ""
    body_lines = f"\n  {body_extra}" if body_extra else ""
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
  <meta name="description" content="{description}">
  <meta name="keywords" content="{keywords}">
  <link rel="stylesheet" href="styles.css">{head_lines}
</head>
<body>
  <nav>
      {render_nav(site)}
  </nav>
  <main id="app">
      {elements}
  </main>
  <div class="blocks">
      {blocks}
  </div>
  {render_page_sections(site)}
  <script src="{script_name}"></script>{body_lines}
</body>
</html>
"""


def render_package_json(site: SiteModel) -> str:
    return to_json(
        {
            "name": project_slug(site),
            "version": "1.0.0",
            "description": site.seo.description,
            "private": True,
            "scripts": {
                "start": "npx serve .",
                "build": "echo 'Static site - no build step'",
            },
            "keywords": list(site.seo.keywords),
        }
    )


def render_readme(site: SiteModel) -> str:
    name = display_name(site)
    pages = ", ".join(site.pages)
    return f"""# {name}

{site.seo.description}

Site type: {site.archetype}
Pages: {pages}

## Run locally

```
npm start
```

## Deploy

The bundle is plain static files. Upload the folder as-is to any static host
(GitHub Pages, Netlify, Vercel); no build step is needed.
"""


def emit_web(site: SiteModel) -> Dict[str, Any]:
    return {
        "index.html": render_index_html(site),
        "styles.css": render_stylesheet(site),
        "script.js": render_script(site),
        "package.json": render_package_json(site),
        "README.md": render_readme(site),
    }
