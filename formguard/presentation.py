"""Markup and script snippets that carry a token to the browser."""

import json

from markupsafe import escape


def render_input(name: str, value: str) -> str:
    """Render a hidden form field holding the token.

    Example:
        >>> render_input("key-awesome", "ab12")
        '<input type="hidden" name="key-awesome" value="ab12"/>'
    """
    return f'<input type="hidden" name="{escape(name)}" value="{escape(value)}"/>'


def render_javascript(name: str, value: str, declaration: str = "var") -> str:
    """Render a JavaScript statement declaring a variable holding the token.

    Example:
        >>> render_javascript("csrf", "ab12", "const")
        'const csrf = "ab12";'
    """
    return f"{declaration} {name} = {json.dumps(value)};"


def render_script(name: str, value: str, declaration: str = "var") -> str:
    """Render a script element declaring a variable holding the token."""
    return f'<script type="text/javascript">{render_javascript(name, value, declaration)}</script>'
