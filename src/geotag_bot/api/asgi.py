"""ASGI entrypoint for the geotag bot API."""

from geotag_bot.api.app import create_app
from geotag_bot.containers import build_container

app = create_app(build_container())
