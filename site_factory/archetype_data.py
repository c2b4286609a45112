# -*- coding: utf-8 -*-
"""
archetype_data.py
Static per-archetype tables: classifier keywords, default pages/features,
design palettes and the fallback copy used when no remote suggestion is available.
"""

# Evaluated in this order; the first archetype with any keyword hit wins.
ARCHETYPE_KEYWORDS = [
    ("commerce", ["store", "shop", "sell", "buy", "product", "cart"]),
    ("portfolio", ["portfolio", "showcase", "gallery", "artist"]),
    ("dining", ["restaurant", "food", "menu", "order", "dining"]),
    ("editorial", ["blog", "article", "news", "post"]),
    ("business", ["company", "service", "professional", "corporate"]),
    ("landing", ["landing", "saas", "pricing", "signup"]),
]

DEFAULT_ARCHETYPE = "business"

BASE_PAGES = ["Home", "About", "Contact"]
BASE_FEATURES = ["Responsive Design", "SEO Optimized", "Contact Forms", "Social Integration"]

ARCHETYPE_TABLE = {
    "commerce": {
        "pages": ["Products", "Cart", "Checkout", "Account"],
        "features": ["Product Catalog", "Shopping Cart", "Payment Processing"],
        "card": "Featured products",
    },
    "portfolio": {
        "pages": ["Projects", "Services", "Blog", "Resume"],
        "features": ["Project Showcase", "Image Gallery", "Client Testimonials"],
        "card": "Selected work",
    },
    "dining": {
        "pages": ["Menu", "Reservations", "Gallery", "Reviews"],
        "features": ["Online Menu", "Table Reservations", "Food Gallery"],
        "card": "Today's specials",
    },
    "editorial": {
        "pages": ["Articles", "Categories", "Authors", "Newsletter"],
        "features": ["Article Archive", "Category Navigation", "Newsletter Signup"],
        "card": "Latest stories",
    },
    "business": {
        "pages": ["Services", "Team", "News"],
        "features": ["Team Profiles", "Service Pages", "News Section"],
        "card": "What we do",
    },
    "landing": {
        "pages": ["Features", "Pricing", "Signup"],
        "features": ["Pricing Table", "Signup Form", "Feature Highlights"],
        "card": "Why teams switch",
    },
    "custom": {
        "pages": [],
        "features": [],
        "card": "Highlights",
    },
}

# Palette and typography per archetype; "default" covers archetypes without a row
DESIGN_TABLE = {
    "commerce": {
        "primary_color": "#0f766e",
        "secondary_color": "#134e4a",
        "accent_color": "#f97316",
        "heading_font": "Poppins, sans-serif",
        "body_font": "Inter, sans-serif",
        "spacing_scale": 1.0,
    },
    "portfolio": {
        "primary_color": "#111827",
        "secondary_color": "#374151",
        "accent_color": "#e11d48",
        "heading_font": "Playfair Display, serif",
        "body_font": "Lato, sans-serif",
        "spacing_scale": 1.25,
    },
    "dining": {
        "primary_color": "#9a3412",
        "secondary_color": "#451a03",
        "accent_color": "#facc15",
        "heading_font": "Georgia, serif",
        "body_font": "Open Sans, sans-serif",
        "spacing_scale": 1.125,
    },
    "editorial": {
        "primary_color": "#1f2937",
        "secondary_color": "#6b7280",
        "accent_color": "#2563eb",
        "heading_font": "Merriweather, serif",
        "body_font": "Source Sans Pro, sans-serif",
        "spacing_scale": 1.0,
    },
    "business": {
        "primary_color": "#1d4ed8",
        "secondary_color": "#1e293b",
        "accent_color": "#10b981",
        "heading_font": "Roboto, sans-serif",
        "body_font": "Roboto, sans-serif",
        "spacing_scale": 1.0,
    },
    "landing": {
        "primary_color": "#6366f1",
        "secondary_color": "#312e81",
        "accent_color": "#22d3ee",
        "heading_font": "Inter, sans-serif",
        "body_font": "Inter, sans-serif",
        "spacing_scale": 0.875,
    },
    "default": {
        "primary_color": "#2563eb",
        "secondary_color": "#1e293b",
        "accent_color": "#f59e0b",
        "heading_font": "system-ui, sans-serif",
        "body_font": "system-ui, sans-serif",
        "spacing_scale": 1.0,
    },
}

# Fallback copy. {archetype} and {subject} are interpolated.
CONTENT_TEMPLATES = {
    "default": {
        "headline": "A {archetype} website built for {subject}",
        "description": "Everything your {archetype} site needs in one place: clear pages, fast loading and a design that works on every screen.",
        "features": "- Responsive {archetype} layout\n- Search-friendly pages\n- Simple contact and signup forms",
        "cta": "Get Started",
        "testimonial": "\"Launching our {archetype} site took an afternoon instead of a month.\" - Happy customer",
    },
    "commerce": {
        "headline": "Shop {subject} online",
        "description": "A {archetype} storefront with a product catalog, secure checkout and order tracking for {subject}.",
        "features": "- Curated product catalog\n- Fast, secure checkout\n- Order and inventory tracking",
        "cta": "Shop Now",
        "testimonial": "\"Our {archetype} sales doubled in the first quarter.\" - Store owner",
    },
    "portfolio": {
        "headline": "{subject}: selected work",
        "description": "A {archetype} that puts your projects first, with galleries, case studies and an easy way to get in touch.",
        "features": "- Full-screen project gallery\n- Case study pages\n- Client testimonials",
        "cta": "View My Work",
        "testimonial": "\"The {archetype} landed me three new clients in a month.\" - Independent artist",
    },
    "dining": {
        "headline": "Welcome to {subject}",
        "description": "Browse the menu, book a table and order online. A {archetype} experience that starts before guests arrive.",
        "features": "- Online menu with photos\n- Table reservations\n- Online ordering",
        "cta": "Book a Table",
        "testimonial": "\"Reservations went up the week our new {archetype} site went live.\" - Restaurant owner",
    },
    "editorial": {
        "headline": "Stories about {subject}",
        "description": "An {archetype} home for long reads, quick updates and a newsletter your readers will open.",
        "features": "- Article archive and categories\n- Author pages\n- Newsletter signup",
        "cta": "Start Reading",
        "testimonial": "\"Our readers finally find older {archetype} pieces.\" - Editor",
    },
    "business": {
        "headline": "{subject}, done professionally",
        "description": "A {archetype} website that explains your services, introduces the team and turns visitors into leads.",
        "features": "- Service overview pages\n- Team profiles\n- Lead capture forms",
        "cta": "Contact Us",
        "testimonial": "\"The new {archetype} site brings in qualified leads every week.\" - Managing director",
    },
    "landing": {
        "headline": "{subject} in minutes",
        "description": "A focused {archetype} page with clear pricing and a one-step signup.",
        "features": "- Feature highlights\n- Transparent pricing table\n- One-step signup",
        "cta": "Start Free Trial",
        "testimonial": "\"Our {archetype} page converts at twice the old rate.\" - Growth lead",
    },
}

CONTENT_SLOTS = ("headline", "description", "features", "cta", "testimonial")


def get_archetype_row(archetype: str) -> dict:
    return ARCHETYPE_TABLE.get(archetype, ARCHETYPE_TABLE["custom"])


def get_design_row(archetype: str) -> dict:
    return DESIGN_TABLE.get(archetype, DESIGN_TABLE["default"])


def get_content_templates(archetype: str) -> dict:
    return CONTENT_TEMPLATES.get(archetype, CONTENT_TEMPLATES["default"])
