"""HTML document shell.

The page body is rendered first (hydratable) so components can fill in
the head; the shell is then rendered as static markup around it.
The doctype is prepended by the request server, not the template.
"""

from typing import Any

from kida import Markup

from trill.render.nodes import InlineTemplate
from trill.render.renderer import render_attrs
from trill.runtime.context import Head

MOUNT_ID = "_trill"

DOCUMENT_SOURCE = """\
<html{{ html_attrs }}>
<head>
<meta charset="utf-8">
{% if title %}<title>{{ title }}</title>
{% end %}
{% for tag in meta %}<meta{{ tag }}>
{% end %}
{% for tag in links %}<link{{ tag }}>
{% end %}
</head>
<body{{ body_attrs }}>
<div id="{{ mount_id }}">{{ main }}</div>
{{ scripts }}
</body>
</html>
"""


def Document(*, head: Head, main: str, scripts: str = "") -> Any:
    """Shell component: ``<html>`` with the collected head and the body."""
    return InlineTemplate(
        DOCUMENT_SOURCE,
        html_attrs=render_attrs(head.html_attrs),
        body_attrs=render_attrs(head.body_attrs),
        title=head.title,
        meta=[render_attrs(tag) for tag in head.meta],
        links=[render_attrs(tag) for tag in head.links],
        mount_id=MOUNT_ID,
        main=Markup(main),
        scripts=Markup(scripts),
    )
