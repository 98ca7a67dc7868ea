"""ASGI entrypoint for the item detection API."""

from item_detection.api.app import create_app
from item_detection.containers import build_container

app = create_app(build_container())
