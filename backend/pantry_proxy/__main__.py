"""Allows `python -m pantry_proxy`."""

from pantry_proxy.main import run

run()
