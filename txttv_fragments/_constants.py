"""Common literal values used across txttv_fragments.

These constants keep placeholder names, CDATA markers, and size ceilings
centralized so the renderer, assembler, validator, and tests import the same
values without drifting. Intended for internal use within the package.

Examples
--------
>>> from txttv_fragments import _constants
>>> _constants.PLACEHOLDER_TEMPLATE.format(name="CONTENT")
'{{CONTENT}}'
>>> _constants.ESCAPED_CDATA_END
']]]]><![CDATA[>'
"""

import codecs

CDATA_START = "<![CDATA["
CDATA_END = "]]>"
ESCAPED_CDATA_END = "]]" + CDATA_END + CDATA_START + ">"

UTF8_BOM = codecs.BOM_UTF8

PLACEHOLDER_TEMPLATE = "{{{{{name}}}}}"
PLACEHOLDER_NAMES = (
    "PAGE_NUMBER",
    "CONTENT",
    "STYLE",
    "SCRIPT",
    "PREV_PAGE",
    "NEXT_PAGE",
)
REQUIRED_PLACEHOLDERS = ("CONTENT",)

DEFAULT_ROOT_TAG = "fragment"
DEFAULT_BODY_TAG = "set-body"
MAX_FRAGMENT_BYTES = 256 * 1024
MAX_CONTENT_CHARS = 2000
STYLE_ADVISORY_BYTES = 5 * 1024
SCRIPT_ADVISORY_BYTES = 10 * 1024

DEFAULT_SCRIPT_ORIGINS = (
    "https://cdn.jsdelivr.net",
    "https://cdnjs.cloudflare.com",
    "https://unpkg.com",
)
