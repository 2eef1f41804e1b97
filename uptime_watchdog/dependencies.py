from fastapi import Request

from .services.monitor_service import MonitorContext


def get_context(request: Request) -> MonitorContext:
    return request.app.state.context


def get_db(request: Request):
    database = request.app.state.context.database
    with database.session() as db:
        yield db
