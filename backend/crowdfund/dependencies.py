"""Request-scoped accessors for the clients created at start-up."""
from fastapi import Request

from .config import Settings


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_gateway(request: Request):
    return request.app.state.gateway


def get_mailer(request: Request):
    return request.app.state.mailer
