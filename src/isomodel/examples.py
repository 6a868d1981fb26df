"""
Example catalogue view-models, layout and templates for proof-of-concept.

Builds a small streaming-catalogue page: Movie extends Media, holds a
list of Extra clips and an optional Trailer, and exposes computed
properties for the badge and rating label. The layout and templates
render a signed-in sidebar and one tile per shelf entry.
"""
from isomodel.class_parser import parse_class_string
from isomodel.layout import parse_layout
from isomodel.model import ManifestSet
from isomodel.renderer import Engine, TemplateRegistry
from isomodel.snapshot import StateSnapshot
from isomodel.transpiler import transpile_manifests

CATALOGUE_SOURCE = '''
class Image:
    url = ''
    width = 0


class Trailer:
    url = ''
    duration = 0.0


class Extra:
    title = ''
    is_featured = False


class Media:
    id = 0
    title = ''
    poster = Image()


class Movie(Media):
    """A film on a shelf."""
    is_new = False
    rating = 0
    extras = [Extra()]
    tags = ['']
    trailer: Trailer = None

    @property
    def has_badge(self):
        return self.is_new and self.trailer is not None

    @property
    def is_top_rated(self) -> bool:
        return self.rating >= 4

    @property
    def trailer_url(self):
        return self.trailer.url

    @property
    def label(self):
        return "Top rated" if self.is_top_rated else None
'''

CATALOGUE_LAYOUT = """
[
    {"name": "header"},
    {"name": "sidebar", "if": ["user.isSignedIn"]},
    {"name": "shelf", "each": "entry.shelves", "layout": [
        {"name": "shelf-title"},
        {"name": "tile", "each": "module.movies"}
    ]},
    {"name": "footer", "unless": ["config.hideFooter"]}
]
"""

CATALOGUE_TEMPLATES = {
    "header": "<header>{{global.siteName}}</header>\n",
    "sidebar": "<nav>Hello, {{user.name}}</nav>\n",
    "shelf-title": "<h2>{{module.title}}</h2>\n",
    "tile": (
        "<article>{{module.title}}"
        "{{#if module.hasBadge}} <b>NEW</b>{{/if}}"
        "{{#each module.tags}} #{{this}}{{/each}}"
        "</article>\n"
    ),
    "footer": "<footer>{{#unless config.hideCopyright}}&copy; {{global.siteName}}{{/unless}}</footer>\n",
}

CATALOGUE_STATE = {
    "global": {"siteName": "Reel & Co"},
    "config": {"hideFooter": False},
    "entry": {
        "shelves": [
            {"title": "New releases", "movies": [
                {"title": "Arrival", "hasBadge": True, "tags": ["sci-fi", "drama"]},
                {"title": "Heat", "hasBadge": False, "tags": []},
            ]},
            {"title": "Classics", "movies": [
                {"title": "Casablanca", "hasBadge": False, "tags": ["romance"]},
            ]},
        ],
    },
    "user": {"isSignedIn": True, "name": "Sam"},
    "state": {},
    "modules": {},
}

CATALOGUE_PAGE = (
    "<header>Reel &amp; Co</header>\n"
    "<nav>Hello, Sam</nav>\n"
    "<h2>New releases</h2>\n"
    "<article>Arrival <b>NEW</b> #sci-fi #drama</article>\n"
    "<article>Heat</article>\n"
    "<h2>Classics</h2>\n"
    "<article>Casablanca #romance</article>\n"
    "<footer>&copy; Reel &amp; Co</footer>\n"
)


def build_example_manifests() -> ManifestSet:
    """Build and transpile the catalogue view-models."""
    manifests = parse_class_string(CATALOGUE_SOURCE, filename="catalogue.py")
    return transpile_manifests(manifests)


def build_example_layout() -> tuple:
    return parse_layout(CATALOGUE_LAYOUT, source="catalogue.json")


def build_example_registry(engine: Engine = Engine.INTERPRETED) -> TemplateRegistry:
    return TemplateRegistry(CATALOGUE_TEMPLATES, engine=engine)


def build_example_snapshot(**overrides) -> StateSnapshot:
    """The catalogue state, with top-level fields replaced by `overrides`."""
    data = dict(CATALOGUE_STATE)
    data.update(overrides)
    return StateSnapshot.from_dict(data)


__all__ = [
    "CATALOGUE_SOURCE",
    "CATALOGUE_LAYOUT",
    "CATALOGUE_TEMPLATES",
    "CATALOGUE_STATE",
    "CATALOGUE_PAGE",
    "build_example_manifests",
    "build_example_layout",
    "build_example_registry",
    "build_example_snapshot",
]
