"""XSS sanitization for untrusted email markup, with per-pass hooks.

``Sanitizer`` wraps a ``bleach.Cleaner`` built from a broad allowlist of
HTML and SVG markup. Callers may register hooks that see every surviving
element after bleach has cleaned its attributes; hooks are meant to live
for exactly one ``sanitize`` call and are registered through
``scoped_hooks`` so they are always removed again, even when sanitizing
raises.
"""

from __future__ import annotations

import re
import threading
import warnings
from contextlib import contextmanager
from enum import Enum
from functools import partial
from typing import Callable, Iterable, Iterator, Optional

import bleach
from bleach.css_sanitizer import ALLOWED_CSS_PROPERTIES, ALLOWED_SVG_PROPERTIES, CSSSanitizer
from bleach.html5lib_shim import Filter
from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning

warnings.filterwarnings("ignore", category=MarkupResemblesLocatorWarning)

XLINK_NAMESPACE = "http://www.w3.org/1999/xlink"
_ATTRIBUTE_PREFIXES = {
    XLINK_NAMESPACE: "xlink",
    "http://www.w3.org/XML/1998/namespace": "xml",
    "http://www.w3.org/2000/xmlns/": "xmlns",
}

# Tags safe for rendering email content
_HTML_TAGS = frozenset({
    "a", "abbr", "acronym", "address", "area", "article", "aside", "audio",
    "b", "bdi", "bdo", "big", "blink", "blockquote", "body", "br", "button",
    "canvas", "caption", "center", "cite", "code", "col", "colgroup",
    "content", "data", "datalist", "dd", "decorator", "del", "details", "dfn",
    "dialog", "dir", "div", "dl", "dt", "element", "em", "fieldset",
    "figcaption", "figure", "font", "footer", "form", "h1", "h2", "h3", "h4",
    "h5", "h6", "head", "header", "hgroup", "hr", "html", "i", "img", "input",
    "ins", "kbd", "label", "legend", "li", "main", "map", "mark", "marquee",
    "menu", "menuitem", "meter", "nav", "nobr", "ol", "optgroup", "option",
    "output", "p", "picture", "pre", "progress", "q", "rp", "rt", "ruby", "s",
    "samp", "section", "select", "shadow", "small", "source", "spacer", "span",
    "strike", "strong", "style", "sub", "summary", "sup", "table", "tbody",
    "td", "textarea", "tfoot", "th", "thead", "time", "tr", "track", "tt",
    "u", "ul", "var", "video", "wbr",
})

_SVG_TAGS = frozenset({
    "svg", "a", "altGlyph", "altGlyphDef", "altGlyphItem", "animateColor",
    "animateMotion", "animateTransform", "circle", "clipPath", "defs", "desc",
    "ellipse", "filter", "font", "g", "glyph", "glyphRef", "hkern", "image",
    "line", "linearGradient", "marker", "mask", "metadata", "mpath", "path",
    "pattern", "polygon", "polyline", "radialGradient", "rect", "stop",
    "style", "switch", "symbol", "text", "textPath", "title", "tref", "tspan",
    "view", "vkern", "feBlend", "feColorMatrix", "feComponentTransfer",
    "feComposite", "feConvolveMatrix", "feDiffuseLighting",
    "feDisplacementMap", "feDistantLight", "feFlood", "feFuncA", "feFuncB",
    "feFuncG", "feFuncR", "feGaussianBlur", "feImage", "feMerge",
    "feMergeNode", "feMorphology", "feOffset", "fePointLight",
    "feSpecularLighting", "feSpotLight", "feTile", "feTurbulence",
})

ALLOWED_TAGS = _HTML_TAGS | _SVG_TAGS

# Removed together with everything inside them, before bleach sees the markup
_DROP_WITH_CONTENT = frozenset({
    "script", "noscript", "template", "iframe", "frame", "frameset", "object",
    "embed", "applet", "noembed", "noframes", "xmp", "plaintext", "title",
    "math", "base", "meta", "link",
})

_HTML_ATTRIBUTES = frozenset({
    "accept", "action", "align", "alt", "autocapitalize", "autocomplete",
    "autopictureinpicture", "autoplay", "background", "bgcolor", "border",
    "capture", "cellpadding", "cellspacing", "checked", "cite", "class",
    "clear", "color", "cols", "colspan", "controls", "controlslist", "coords",
    "crossorigin", "datetime", "decoding", "default", "dir", "disabled",
    "disablepictureinpicture", "disableremoteplayback", "download",
    "draggable", "enctype", "enterkeyhint", "face", "for", "headers",
    "height", "hidden", "high", "href", "hreflang", "id", "inputmode",
    "integrity", "ismap", "kind", "label", "lang", "list", "loading", "loop",
    "low", "max", "maxlength", "media", "method", "min", "minlength",
    "multiple", "muted", "name", "nonce", "noshade", "novalidate", "nowrap",
    "open", "optimum", "pattern", "placeholder", "playsinline", "poster",
    "preload", "pubdate", "radiogroup", "readonly", "rel", "required", "rev",
    "reversed", "role", "rows", "rowspan", "spellcheck", "scope", "selected",
    "shape", "size", "sizes", "span", "srclang", "start", "src", "srcset",
    "step", "style", "summary", "tabindex", "target", "title", "translate",
    "type", "usemap", "valign", "value", "width", "xmlns",
})

_SVG_ATTRIBUTES = frozenset({
    "accent-height", "accumulate", "additive", "alignment-baseline",
    "ascent", "attributename", "attributetype", "azimuth", "basefrequency",
    "baseline-shift", "begin", "bias", "by", "clip", "clippathunits",
    "clip-path", "clip-rule", "color-interpolation",
    "color-interpolation-filters", "color-profile", "color-rendering", "cx",
    "cy", "d", "dx", "dy", "diffuseconstant", "direction", "display",
    "divisor", "dur", "edgemode", "elevation", "end", "fill", "fill-opacity",
    "fill-rule", "filter", "filterunits", "flood-color", "flood-opacity",
    "font-family", "font-size", "font-size-adjust", "font-stretch",
    "font-style", "font-variant", "font-weight", "fx", "fy", "g1", "g2",
    "glyph-name", "glyphref", "gradientunits", "gradienttransform",
    "image-rendering", "in", "in2", "k", "k1", "k2", "k3", "k4", "kerning",
    "keypoints", "keysplines", "keytimes", "lengthadjust",
    "letter-spacing", "kernelmatrix", "kernelunitlength", "lighting-color",
    "local", "marker-end", "marker-mid", "marker-start", "markerheight",
    "markerunits", "markerwidth", "maskcontentunits", "maskunits", "mask",
    "mode", "numoctaves", "offset", "operator", "opacity", "order",
    "orient", "orientation", "origin", "overflow", "paint-order",
    "path", "pathlength", "patterncontentunits", "patterntransform",
    "patternunits", "points", "preservealpha", "preserveaspectratio",
    "primitiveunits", "r", "rx", "ry", "radius", "refx", "refy",
    "repeatcount", "repeatdur", "restart", "result", "rotate", "scale",
    "seed", "shape-rendering", "specularconstant", "specularexponent",
    "spreadmethod", "startoffset", "stddeviation", "stitchtiles",
    "stop-color", "stop-opacity", "stroke-dasharray", "stroke-dashoffset",
    "stroke-linecap", "stroke-linejoin", "stroke-miterlimit",
    "stroke-opacity", "stroke", "stroke-width", "surfacescale",
    "systemlanguage", "tablevalues", "targetx", "targety", "transform",
    "transform-origin", "text-anchor", "text-decoration", "text-rendering",
    "textlength", "u1", "u2", "unicode", "values", "viewbox", "visibility",
    "version", "vert-adv-y", "vert-origin-x", "vert-origin-y",
    "word-spacing", "wrap", "writing-mode", "xchannelselector",
    "ychannelselector", "x", "x1", "x2", "y", "y1", "y2", "z", "zoomandpan",
    "show", "xlink:href", "xlink:show", "xlink:title", "xml:space",
})

ALLOWED_ATTRIBUTES = _HTML_ATTRIBUTES | _SVG_ATTRIBUTES

_STYLE_END_TAG = re.compile(r"</(style)", re.IGNORECASE)

_URI_ATTRIBUTES = frozenset({"href", "src", "action", "background", "poster", "xlink:href", "cite"})

# Elements allowed to carry inline data: URIs
_DATA_URI_TAGS = frozenset({"img", "image", "video", "audio", "source", "track"})

ALLOWED_PROTOCOLS = frozenset({
    "http", "https", "ftp", "mailto", "tel", "callto", "sms", "cid", "xmpp", "data",
})

ALLOWED_STYLE_PROPERTIES = frozenset(ALLOWED_CSS_PROPERTIES) | frozenset({
    "background", "background-image", "background-position", "background-repeat",
    "background-size", "border", "border-bottom", "border-collapse", "border-left",
    "border-radius", "border-right", "border-spacing", "border-style", "border-top",
    "border-width", "bottom", "box-sizing", "left", "list-style", "list-style-type",
    "margin", "margin-bottom", "margin-left", "margin-right", "margin-top",
    "max-height", "max-width", "min-height", "min-width", "opacity", "padding",
    "padding-bottom", "padding-left", "padding-right", "padding-top", "position",
    "right", "table-layout", "text-transform", "top", "visibility", "word-break",
    "word-wrap", "z-index", "list-style-image", "content", "cursor",
})


class HookPoint(str, Enum):
    UPON_SANITIZE_ELEMENT = "upon_sanitize_element"
    AFTER_SANITIZE_ATTRIBUTES = "after_sanitize_attributes"


class SanitizedNode:
    """Mutable view of one element token as it leaves the sanitizer.

    Attribute names are their serialized forms (``xlink:href`` rather than a
    namespace tuple). ``text`` is only set for ``style`` elements and holds
    the element's raw style sheet.
    """

    def __init__(self, token: dict, text: Optional[str] = None) -> None:
        self._token = token
        self.text = text
        if "data" not in token:
            token["data"] = {}

    @property
    def tag_name(self) -> str:
        return self._token["name"].lower()

    @property
    def supports_target(self) -> bool:
        # Elements exposing a ``target`` property in the DOM
        return self.tag_name in ("a", "area", "form")

    def get_attribute(self, name: str) -> Optional[str]:
        return self._token["data"].get((None, name))

    def has_attribute(self, name: str) -> bool:
        return (None, name) in self._token["data"]

    def set_attribute(self, name: str, value: str) -> None:
        self._token["data"][(None, name)] = value

    def remove_attribute(self, name: str) -> None:
        self._token["data"].pop((None, name), None)


Hook = Callable[[SanitizedNode], None]


def _allow_attribute(tag: str, name: str, value: str) -> bool:
    name = name.lower()
    if name.startswith("on"):
        return False
    if name.startswith(("data-", "aria-")):
        return True
    if name not in ALLOWED_ATTRIBUTES:
        return False
    if name in _URI_ATTRIBUTES and value.strip().lower().startswith("data:"):
        return tag.lower() in _DATA_URI_TAGS
    return True


def _drop_forbidden_content(dirty: str, tags: frozenset[str]) -> str:
    soup = BeautifulSoup(dirty, "html.parser")
    for element in soup.find_all(lambda t: t.name.lower() in tags):
        # Parents found earlier may already have taken this element with them
        if element.decomposed:
            continue
        element.decompose()
    return str(soup)


def _serialized_attributes(data: dict) -> dict:
    renamed = {}
    for (namespace, name), value in data.items():
        prefix = _ATTRIBUTE_PREFIXES.get(namespace)
        renamed[(None, f"{prefix}:{name}" if prefix else name)] = value
    return renamed


class _HookFilter(Filter):
    """Reassembles style sheets and runs registered hooks over the cleaned token stream."""

    def __init__(self, source, hooks: dict[HookPoint, tuple[Hook, ...]]) -> None:
        super().__init__(source)
        self.hooks = hooks

    def _run(self, node: SanitizedNode) -> None:
        for hook in self.hooks.get(HookPoint.UPON_SANITIZE_ELEMENT, ()):
            hook(node)
        for hook in self.hooks.get(HookPoint.AFTER_SANITIZE_ATTRIBUTES, ()):
            hook(node)

    def _flush_style(self, start: dict, chunks: list[str]) -> Iterator[dict]:
        node = SanitizedNode(start, text="".join(chunks))
        self._run(node)
        yield start
        if node.text:
            # Serialized unescaped, so a closing tag in the sheet would end the element
            yield {"type": "Characters", "data": _STYLE_END_TAG.sub(r"<\\/\1", node.text)}

    def __iter__(self) -> Iterator[dict]:
        style_start: Optional[dict] = None
        style_chunks: list[str] = []
        for token in super().__iter__():
            kind = token["type"]
            if kind in ("StartTag", "EmptyTag"):
                token["data"] = _serialized_attributes(token.get("data", {}))

            if style_start is not None:
                if kind == "EndTag" and token["name"] == "style":
                    yield from self._flush_style(style_start, style_chunks)
                    yield token
                    style_start, style_chunks = None, []
                elif kind in ("Characters", "SpaceCharacters"):
                    style_chunks.append(token["data"])
                elif kind == "Entity":
                    style_chunks.append("&%s;" % token["name"])
                continue

            if kind == "StartTag" and token["name"] == "style":
                style_start = token
                continue
            if kind in ("StartTag", "EmptyTag"):
                self._run(SanitizedNode(token))
            yield token

        if style_start is not None:
            yield from self._flush_style(style_start, style_chunks)


class Sanitizer:
    """Allowlist sanitizer shared by every render pass.

    Hooks are process-wide state on an instance; use ``scoped_hooks`` to
    register them for a single pass.
    """

    def __init__(
        self,
        tags: Iterable[str] = ALLOWED_TAGS,
        protocols: Iterable[str] = ALLOWED_PROTOCOLS,
        style_properties: Iterable[str] = ALLOWED_STYLE_PROPERTIES,
    ) -> None:
        self.tags = frozenset(tags)
        self.protocols = frozenset(protocols)
        self.css_sanitizer = CSSSanitizer(
            allowed_css_properties=frozenset(style_properties),
            allowed_svg_properties=ALLOWED_SVG_PROPERTIES,
        )
        self._hooks: dict[HookPoint, list[Hook]] = {point: [] for point in HookPoint}
        self.lock = threading.RLock()

    # ---- Hooks ----

    def add_hook(self, point: HookPoint, hook: Hook) -> None:
        self._hooks[HookPoint(point)].append(hook)

    def remove_all_hooks(self) -> None:
        for hooks in self._hooks.values():
            hooks.clear()

    @property
    def hook_count(self) -> int:
        return sum(len(hooks) for hooks in self._hooks.values())

    # ---- Sanitizing ----

    def sanitize(self, dirty: str, forbid_tags: Iterable[str] = ()) -> str:
        """Return markup safe for direct insertion into a page."""
        if not dirty:
            return ""
        forbidden = frozenset(tag.lower() for tag in forbid_tags)
        prepared = _drop_forbidden_content(dirty, _DROP_WITH_CONTENT | forbidden)

        snapshot = {point: tuple(hooks) for point, hooks in self._hooks.items()}
        allowed = frozenset(t for t in self.tags if t.lower() not in forbidden)
        cleaner = bleach.Cleaner(
            # The tokenizer matches lowercased names, the filter adjusted SVG names
            tags=allowed | frozenset(t.lower() for t in allowed),
            attributes=_allow_attribute,
            protocols=self.protocols,
            strip=True,
            strip_comments=True,
            css_sanitizer=self.css_sanitizer,
            filters=[partial(_HookFilter, hooks=snapshot)],
        )
        # Style sheets are raw text; attribute order must not depend on hooks
        cleaner.serializer.escape_rcdata = False
        cleaner.serializer.alphabetical_attributes = True
        return cleaner.clean(prepared)


@contextmanager
def scoped_hooks(sanitizer: Sanitizer, hooks: Iterable[tuple[HookPoint, Hook]]) -> Iterator[Sanitizer]:
    """Register ``hooks`` for the duration of the block, then remove them all.

    The sanitizer's lock is held throughout so that concurrent passes never
    observe each other's hooks.
    """
    with sanitizer.lock:
        sanitizer.remove_all_hooks()
        try:
            for point, hook in hooks:
                sanitizer.add_hook(point, hook)
            yield sanitizer
        finally:
            sanitizer.remove_all_hooks()
