"""ASGI entrypoint for the QuickQR view host."""

from quickqr_client.api.app import create_app
from quickqr_client.containers import build_container

app = create_app(build_container())
