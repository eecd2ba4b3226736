"""Fixture LSP server serving canned responses to the harness."""

from lsprig.fixture.server import create_server

__all__ = ["create_server"]
