"""Common literal values used across portal_preview.

The portal export format fixes these file suffixes and directory names, and
operators grep rendered output for the diagnostic markers, so both live here
where the resolver, renderer, and tests can import the same values.

Examples
--------
>>> from portal_preview import _constants
>>> _constants.INCLUDE_NOT_FOUND_MARKER.format(name="Ghost Widget")
'<!-- Include not found: Ghost Widget -->'
>>> _constants.TEMPLATE_SOURCE_SUFFIX
'.webtemplate.source.html'
"""

PAGE_CONTENT_DIR = "content-pages"
PAGE_META_SUFFIX = ".webpage.yml"
PAGE_COPY_SUFFIX = ".webpage.copy.html"
PAGE_CSS_SUFFIX = ".webpage.custom_css.css"
PAGE_JS_SUFFIX = ".webpage.custom_javascript.js"
TEMPLATE_SOURCE_SUFFIX = ".webtemplate.source.html"
SNIPPET_VALUE_SUFFIX = ".contentsnippet.value.html"
SNIPPET_LEGACY_SUFFIX = ".contentsnippet.html"

INCLUDE_NOT_FOUND_MARKER = "<!-- Include not found: {name} -->"
SNIPPET_NOT_FOUND_MARKER = "<!-- Snippet not found: {name} -->"
INCLUDE_DEPTH_MARKER = "<!-- Include depth limit reached: {name} -->"
RENDER_ERROR_MARKER = "<!-- Render error in {identity}: {message} -->"

DEFAULT_LANGUAGE = "en-US"
DEFAULT_MAX_INCLUDE_DEPTH = 10
NOT_FOUND_ROUTE = "/page-not-found"
TRACKING_SNIPPET = "Tracking Code"
