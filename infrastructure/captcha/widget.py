"""reCAPTCHA challenge widget markup.

The template never changes, so it is compiled once at import time and
shared read-only by every session. Only the public key and the last error
code vary per render.
"""

from dataclasses import dataclass
from typing import TextIO

from jinja2 import Environment, select_autoescape

from config import RECAPTCHA_API_SERVER

CHALLENGE_FIELD = "recaptcha_challenge_field"
RESPONSE_FIELD = "recaptcha_response_field"

_WIDGET_TEMPLATE = """
<script type="text/javascript" src="{{ api_server }}/challenge?k={{ public_key|urlencode }}&error={{ error_code|urlencode }}"></script>
<noscript>
	<iframe src="{{ api_server }}/noscript?k={{ public_key|urlencode }}&error={{ error_code|urlencode }}" height="300" width="500" frameborder="0"></iframe><br>
	<textarea name="{{ challenge_field }}" rows="3" cols="40"></textarea>
	<input type="hidden" name="{{ response_field }}" value="manual_challenge">
</noscript>
"""

_env = Environment(autoescape=select_autoescape(default_for_string=True))
_template = _env.from_string(_WIDGET_TEMPLATE)


@dataclass(frozen=True)
class WidgetFields:
    """The only session data the widget needs."""

    public_key: str
    error_code: str = ""


def render_widget(fields: WidgetFields, api_server: str = RECAPTCHA_API_SERVER) -> str:
    return _template.render(
        api_server=api_server.rstrip("/"),
        public_key=fields.public_key,
        error_code=fields.error_code,
        challenge_field=CHALLENGE_FIELD,
        response_field=RESPONSE_FIELD,
    )


def write_widget(
    stream: TextIO, fields: WidgetFields, api_server: str = RECAPTCHA_API_SERVER
) -> None:
    _template.stream(
        api_server=api_server.rstrip("/"),
        public_key=fields.public_key,
        error_code=fields.error_code,
        challenge_field=CHALLENGE_FIELD,
        response_field=RESPONSE_FIELD,
    ).dump(stream)
