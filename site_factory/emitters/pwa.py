"""Installable web app: the web bundle plus manifest, service worker and icon folder."""

from __future__ import annotations

from typing import Any, Dict

from ..site_model import SiteModel
from .common import display_name, escape_html, escape_js, render_script, render_stylesheet, to_json
from .web import render_index_html

ICON_SIZES = (72, 192, 512)
CACHED_FILES = ("/", "/index.html", "/styles.css", "/app.js", "/manifest.json")


def render_manifest(site: SiteModel) -> str:
    name = display_name(site)
    return to_json(
        {
            "name": name,
            "short_name": name.split(" ")[0] or name,
            "description": site.seo.description,
            "start_url": "/",
            "display": "standalone",
            "background_color": "#ffffff",
            "theme_color": site.design_tokens.primary_color,
            "icons": [
                {"src": f"icons/icon-{size}x{size}.png", "sizes": f"{size}x{size}", "type": "image/png"}
                for size in ICON_SIZES
            ],
        }
    )


def render_service_worker(site: SiteModel, cache_version: str) -> str:
    urls = ",\n  ".join(escape_js(u) for u in CACHED_FILES)
    return f"""const CACHE_NAME = {escape_js(f"{site.id}-{cache_version}")};
const urlsToCache = [
  {urls}
];

self.addEventListener('install', function (event) {{
  event.waitUntil(
    caches.open(CACHE_NAME).then(function (cache) {{
      return cache.addAll(urlsToCache);
    }})
  );
}});

self.addEventListener('activate', function (event) {{
  event.waitUntil(
    caches.keys().then(function (names) {{
      return Promise.all(
        names.filter(function (n) {{ return n !== CACHE_NAME; }}).map(function (n) {{ return caches.delete(n); }})
      );
    }})
  );
}});

self.addEventListener('fetch', function (event) {{
  event.respondWith(
    caches.match(event.request).then(function (response) {{
      return response || fetch(event.request);
    }})
  );
}});
"""


SW_REGISTRATION = """<script>
    if ('serviceWorker' in navigator) {
      navigator.serviceWorker.register('/sw.js');
    }
  </script>"""

PWA_README = """# Installable Web App

Serve the folder over HTTPS from any static host (GitHub Pages, Netlify, Vercel).
The service worker caches the app shell for offline use.

Replace the placeholder files in `icons/` with PNG icons of the listed sizes
before publishing.

To check the install: open Chrome DevTools, go to the Application tab and
inspect the Manifest and Service Workers sections.
"""


def emit_pwa(site: SiteModel, cache_version: str) -> Dict[str, Any]:
    head_extra = (
        '<link rel="manifest" href="manifest.json">\n'
        f'  <meta name="theme-color" content="{escape_html(site.design_tokens.primary_color)}">\n'
        '  <link rel="apple-touch-icon" href="icons/icon-192x192.png">'
    )
    return {
        "index.html": render_index_html(site, head_extra=head_extra, body_extra=SW_REGISTRATION, script_name="app.js"),
        "manifest.json": render_manifest(site),
        "sw.js": render_service_worker(site, cache_version),
        "styles.css": render_stylesheet(site),
        "app.js": render_script(site),
        "icons": {},
        "README.md": PWA_README,
    }
