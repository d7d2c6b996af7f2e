import os

from jinja2 import Environment, FileSystemLoader, select_autoescape

BASE_PATH = os.path.join(os.path.dirname(__file__), "..", "static", "emails")

env = Environment(
    loader=FileSystemLoader(BASE_PATH),
    autoescape=select_autoescape(["html", "xml"]),
)


def load_template(filename: str, **kwargs):
    """Renders a template from static/emails; .html templates are autoescaped."""
    return env.get_template(filename).render(**kwargs)
