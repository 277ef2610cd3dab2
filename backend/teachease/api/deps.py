from fastapi import Request

from teachease.core.container import Services


def get_services(request: Request) -> Services:
    return request.app.state.services
