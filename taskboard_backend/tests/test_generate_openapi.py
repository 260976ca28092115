import json

from src.taskboard.generate_openapi import build_openapi_schema, generate_openapi


def test_schema_lists_tags_and_routes():
    schema = build_openapi_schema()
    assert {t["name"] for t in schema["tags"]} >= {"health", "auth", "tasks", "views"}
    paths = schema["paths"]
    for path in (
        "/api/v1/auth/signup",
        "/api/v1/auth/login",
        "/api/v1/auth/logout",
        "/api/v1/auth/me",
        "/api/v1/tasks",
        "/api/v1/tasks/{task_id}",
        "/api/v1/tasks/{task_id}/status",
        "/api/v1/users",
        "/api/v1/board",
        "/api/v1/dashboard",
    ):
        assert path in paths
    assert set(paths["/api/v1/tasks/{task_id}"]) >= {"get", "put", "delete"}


def test_generate_writes_file(tmp_path):
    out = generate_openapi(str(tmp_path / "interfaces" / "openapi.json"))
    with open(out, encoding="utf-8") as f:
        written = json.load(f)
    assert written["info"]["title"] == "Taskboard Backend"
