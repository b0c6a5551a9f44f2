"""Jinja2 environment for the packaged templates."""

from jinja2 import Environment, PackageLoader, StrictUndefined, select_autoescape


def get_template_environment() -> Environment:
    """Create the Jinja2 environment over launchpad/templates/*.j2.

    Templates render plain-text files (env, JS, TSX, markdown), so
    autoescaping only applies to html/xml names.
    """
    return Environment(
        loader=PackageLoader("launchpad", "templates"),
        autoescape=select_autoescape(["html", "xml"]),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )
