# src/taskdeck/api/routes.py

"""
HTTP JSON API (aiohttp).

Engine and assistant calls block (subprocesses, read-back sleeps, LLM
streaming) and run in worker threads via asyncio.to_thread, so a slow
request never stalls the event loop or the terminal sessions.

Errors map to status codes in one middleware:
    ValueError (bad input) -> 400, NotFound -> 404,
    ExecutionError / ParseError -> 500; body is {"error": "..."}.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any

from aiohttp import web

from ..chat.catalog import ChatEntry, Report
from ..core.state import AppState
from ..taskwarrior.errors import NotFound, TaskwarriorError
from ..taskwarrior.models import NewTask, Priority, Task, TaskChanges, TaskFilter

logger = logging.getLogger(__name__)

STATE_KEY = web.AppKey("state", AppState)

_DATE_KEYS = ("due", "wait", "scheduled", "until")


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def task_to_payload(task: Task) -> dict[str, Any]:
    degraded = None
    if task.degraded is not None:
        degraded = {
            "reason": task.degraded.reason,
            "attempts": task.degraded.attempts,
            "transientId": task.degraded.transient_id,
            "confirmedId": task.degraded.confirmed_id,
        }
    return {
        "id": task.id,
        "number": task.number,
        "description": task.description,
        "status": str(task.status),
        "priority": task.priority.value if task.priority else None,
        "project": task.project,
        "tags": sorted(task.tags),
        "due": _iso(task.due),
        "wait": _iso(task.wait),
        "scheduled": _iso(task.scheduled),
        "until": _iso(task.until),
        "annotations": task.annotations,
        "created": _iso(task.created),
        "modified": _iso(task.modified),
        "completed": _iso(task.completed),
        "urgency": task.urgency,
        "depends": list(task.depends),
        "degraded": degraded,
    }


def report_to_payload(report: Report) -> dict[str, Any]:
    return {
        "id": report.id,
        "name": report.name,
        "filter": report.filter,
        "description": report.description,
    }


def chat_entry_to_payload(entry: ChatEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "content": entry.content,
        "role": entry.role,
        "timestamp": entry.timestamp.isoformat(),
    }


# ---- request parsing ----


def _opt_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    return value.strip() or None


def _str_list(data: dict[str, Any], key: str) -> list[str] | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, str):
        return [p.strip() for p in value.replace(",", " ").split() if p.strip()]
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return [v.strip() for v in value if v.strip()]
    raise ValueError(f"{key} must be a list of strings")


def _annotations(data: dict[str, Any]) -> str | None:
    value = data.get("annotations")
    if isinstance(value, list):
        if not all(isinstance(v, str) for v in value):
            raise ValueError("annotations must be text or a list of strings")
        return "\n".join(v for v in value if v.strip()) or None
    return _opt_str(data, "annotations")


def new_task_from_payload(data: Any) -> NewTask:
    if not isinstance(data, dict):
        raise ValueError("request body must be a JSON object")
    description = data.get("description")
    if not isinstance(description, str) or not description.strip():
        raise ValueError("description is required")
    return NewTask(
        description=description,
        priority=Priority.parse(_opt_str(data, "priority")),
        project=_opt_str(data, "project"),
        tags=_str_list(data, "tags"),
        annotations=_annotations(data),
        depends=_str_list(data, "depends"),
        **{key: _opt_str(data, key) for key in _DATE_KEYS},
    )


def changes_from_payload(data: Any) -> TaskChanges:
    if not isinstance(data, dict):
        raise ValueError("request body must be a JSON object")
    changes = TaskChanges(
        description=_opt_str(data, "description") if "description" in data else None,
        status=_opt_str(data, "status"),
        priority=Priority.parse(_opt_str(data, "priority")),
        project=_opt_str(data, "project"),
        tags=_str_list(data, "tags"),
        annotations=_annotations(data),
        depends=_str_list(data, "depends"),
        **{key: _opt_str(data, key) for key in _DATE_KEYS},
    )
    if changes.is_empty():
        raise ValueError("no changes given")
    return changes


def filter_from_query(query) -> TaskFilter:
    return TaskFilter(
        status=query.get("status") or None,
        project=query.get("project") or None,
        tag=query.get("tag") or None,
        priority=Priority.parse(query.get("priority")),
        search=query.get("search") or None,
        report=query.get("report") or None,
    )


async def _json_body(request: web.Request) -> Any:
    try:
        return await request.json()
    except ValueError as e:
        raise ValueError("request body is not valid JSON") from e


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"error": message}, status=status)


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except NotFound as e:
        return _error(404, str(e))
    except TaskwarriorError as e:
        logger.error("%s %s failed: %s", request.method, request.path, e)
        return _error(500, str(e))
    except ValueError as e:
        return _error(400, str(e))


# ---- handlers ----


async def list_tasks(request: web.Request) -> web.Response:
    state = request.app[STATE_KEY]
    tasks = await asyncio.to_thread(state.engine.list_tasks, filter_from_query(request.query))
    return web.json_response([task_to_payload(t) for t in tasks])


async def get_task(request: web.Request) -> web.Response:
    state = request.app[STATE_KEY]
    task = await asyncio.to_thread(state.engine.get_task, request.match_info["task_id"])
    return web.json_response(task_to_payload(task))


async def create_task(request: web.Request) -> web.Response:
    state = request.app[STATE_KEY]
    new = new_task_from_payload(await _json_body(request))
    task = await asyncio.to_thread(state.engine.create_task, new)
    return web.json_response(task_to_payload(task), status=201)


async def update_task(request: web.Request) -> web.Response:
    state = request.app[STATE_KEY]
    changes = changes_from_payload(await _json_body(request))
    task = await asyncio.to_thread(state.engine.update_task, request.match_info["task_id"], changes)
    return web.json_response(task_to_payload(task))


async def delete_task(request: web.Request) -> web.Response:
    state = request.app[STATE_KEY]
    await asyncio.to_thread(state.engine.delete_task, request.match_info["task_id"])
    return web.Response(status=204)


async def refresh_tasks(request: web.Request) -> web.Response:
    # Pinged by Taskwarrior hooks; clients poll, nothing to push.
    logger.info("Task data change reported by hook")
    return web.json_response({"success": True})


async def list_projects(request: web.Request) -> web.Response:
    state = request.app[STATE_KEY]
    names = await asyncio.to_thread(state.engine.list_projects)
    return web.json_response([{"id": i, "name": n} for i, n in enumerate(names, start=1)])


async def list_tags(request: web.Request) -> web.Response:
    state = request.app[STATE_KEY]
    names = await asyncio.to_thread(state.engine.list_tags)
    return web.json_response([{"id": i, "name": n} for i, n in enumerate(names, start=1)])


async def list_reports(request: web.Request) -> web.Response:
    state = request.app[STATE_KEY]
    return web.json_response([report_to_payload(r) for r in state.reports.all()])


async def list_chat(request: web.Request) -> web.Response:
    state = request.app[STATE_KEY]
    try:
        limit = int(request.query.get("limit", "50"))
    except ValueError as e:
        raise ValueError("limit must be an integer") from e
    return web.json_response([chat_entry_to_payload(e) for e in state.chat_log.recent(limit)])


async def post_chat(request: web.Request) -> web.Response:
    state = request.app[STATE_KEY]
    data = await _json_body(request)
    if not isinstance(data, dict):
        raise ValueError("request body must be a JSON object")
    content = data.get("content")
    if not isinstance(content, str) or not content.strip():
        raise ValueError("content is required")
    role = data.get("role", "user")

    history = state.chat_log.recent()
    user_message = state.chat_log.add(content, role)
    reply = await asyncio.to_thread(state.assistant.reply, content, history)
    assistant_message = state.chat_log.add(reply, "assistant")

    return web.json_response(
        {
            "userMessage": chat_entry_to_payload(user_message),
            "assistantMessage": chat_entry_to_payload(assistant_message),
        },
        status=201,
    )


def register_routes(app: web.Application) -> None:
    r = app.router
    r.add_get("/api/tasks", list_tasks)
    r.add_post("/api/tasks", create_task)
    r.add_post("/api/tasks/refresh", refresh_tasks)
    r.add_get("/api/tasks/{task_id}", get_task)
    r.add_patch("/api/tasks/{task_id}", update_task)
    r.add_delete("/api/tasks/{task_id}", delete_task)
    r.add_get("/api/projects", list_projects)
    r.add_get("/api/tags", list_tags)
    r.add_get("/api/reports", list_reports)
    r.add_get("/api/chat", list_chat)
    r.add_post("/api/chat", post_chat)


def create_app(state: AppState) -> web.Application:
    app = web.Application(middlewares=[error_middleware])
    app[STATE_KEY] = state
    register_routes(app)
    return app
