from datetime import datetime

TASKS_URL = "/api/v1/tasks"


def create_task_payload(
    name="Test Task",
    description="Do something",
    priority=None,
    status=None,
    due_date=None,
    assignee_id=None,
):
    payload = {"name": name, "description": description}
    if priority is not None:
        payload["priority"] = priority
    if status is not None:
        payload["status"] = status
    if due_date is not None:
        payload["due_date"] = due_date
    if assignee_id is not None:
        payload["assignee_id"] = assignee_id
    return payload


def assert_task_shape(task: dict):
    for key in ["id", "name", "priority", "status", "creator_id", "created_at", "updated_at"]:
        assert key in task
    assert "description" in task
    assert "due_date" in task
    assert "assignee" in task
    assert isinstance(task["id"], int)
    assert isinstance(task["name"], str)
    datetime.fromisoformat(task["created_at"])
    datetime.fromisoformat(task["updated_at"])
    if task["due_date"] is not None:
        datetime.fromisoformat(task["due_date"])
    # Embedded users are id/name only
    for user in (task["creator"], task["assignee"]):
        if user is not None:
            assert set(user) == {"id", "name"}


def create_task(client, **kwargs):
    res = client.post(TASKS_URL, json=create_task_payload(**kwargs))
    assert res.status_code == 201, res.text
    return res.json()["task"]


class TestHealth:
    def test_health_check(self, client):
        res = client.get("/")
        assert res.status_code == 200
        data = res.json()
        assert data["message"] == "Healthy"
        assert data["backend"] in ("memory", "sqlite")


class TestAuthAPI:
    def test_signup_then_duplicate(self, client):
        body = {"email": "ada@example.com", "password": "pw", "name": "Ada"}
        res = client.post("/api/v1/auth/signup", json=body)
        assert res.status_code == 201
        data = res.json()
        assert data == {"error": None, "success": True, "message": data["message"]}

        res = client.post("/api/v1/auth/signup", json=body)
        assert res.status_code == 409
        assert res.json()["success"] is False
        assert res.json()["error"]

    def test_signup_missing_field(self, client):
        res = client.post("/api/v1/auth/signup", json={"email": "ada@example.com", "password": "pw"})
        assert res.status_code == 400
        assert "required" in res.json()["error"].lower()

    def test_over_long_password(self, client):
        res = client.post(
            "/api/v1/auth/signup",
            json={"email": "ada@example.com", "password": "p" * 80, "name": "Ada"},
        )
        assert res.status_code == 400
        assert "72 bytes" in res.json()["error"]

        client.post(
            "/api/v1/auth/signup",
            json={"email": "ada@example.com", "password": "pw", "name": "Ada"},
        )
        res = client.post("/api/v1/auth/login", json={"email": "ada@example.com", "password": "p" * 80})
        assert res.status_code == 401
        assert res.json()["error"] == "Invalid email or password"

    def test_signup_does_not_log_in(self, client):
        client.post(
            "/api/v1/auth/signup",
            json={"email": "ada@example.com", "password": "pw", "name": "Ada"},
        )
        assert client.get("/api/v1/auth/me").json()["user"] is None

    def test_login_sets_cookie_and_me(self, logged_in_client):
        assert logged_in_client.cookies.get("session_token")
        res = logged_in_client.get("/api/v1/auth/me")
        assert res.status_code == 200
        user = res.json()["user"]
        assert user["email"] == "lin@example.com"
        assert user["name"] == "Lin"
        assert "password" not in user and "password_hash" not in user

    def test_login_cookie_attributes(self, client):
        client.post(
            "/api/v1/auth/signup",
            json={"email": "ada@example.com", "password": "pw", "name": "Ada"},
        )
        res = client.post("/api/v1/auth/login", json={"email": "ada@example.com", "password": "pw"})
        header = res.headers["set-cookie"].lower()
        assert "httponly" in header
        assert "path=/" in header
        assert "samesite=lax" in header

    def test_login_failures_look_identical(self, client):
        client.post(
            "/api/v1/auth/signup",
            json={"email": "ada@example.com", "password": "pw", "name": "Ada"},
        )
        wrong_pw = client.post("/api/v1/auth/login", json={"email": "ada@example.com", "password": "nope"})
        no_user = client.post("/api/v1/auth/login", json={"email": "who@example.com", "password": "pw"})
        assert wrong_pw.status_code == no_user.status_code == 401
        assert wrong_pw.json() == no_user.json()
        assert "set-cookie" not in wrong_pw.headers

    def test_logout_is_idempotent(self, logged_in_client):
        res = logged_in_client.post("/api/v1/auth/logout")
        assert res.status_code == 200
        assert res.json()["success"] is True
        assert logged_in_client.get("/api/v1/auth/me").json()["user"] is None

        res = logged_in_client.post("/api/v1/auth/logout")
        assert res.status_code == 200
        assert res.json()["error"] is None

    def test_forged_cookie_is_anonymous(self, client):
        client.cookies.set("session_token", "f" * 64)
        assert client.get("/api/v1/auth/me").json()["user"] is None
        client.cookies.set("session_token", "not-a-token")
        assert client.get("/api/v1/auth/me").json()["user"] is None


class TestTasksCRUD:
    def test_create_requires_session(self, client):
        res = client.post(TASKS_URL, json=create_task_payload())
        assert res.status_code == 401
        data = res.json()
        assert data["success"] is False
        assert data["error"]
        assert "code" not in data
        assert client.get(TASKS_URL).json()["tasks"] == []

    def test_session_is_checked_before_form(self, client):
        res = client.post(TASKS_URL, json=create_task_payload(name=""))
        assert res.status_code == 401
        res = client.patch(f"{TASKS_URL}/1/status", json={"status": "bogus"})
        assert res.status_code == 401
        res = client.put(f"{TASKS_URL}/1", json={"priority": "urgent"})
        assert res.status_code == 401

    def test_create_minimal(self, logged_in_client):
        res = logged_in_client.post(TASKS_URL, json={"name": "Buy milk"})
        assert res.status_code == 201
        data = res.json()
        assert data["error"] is None
        assert data["success"] is True
        task = data["task"]
        assert_task_shape(task)
        assert task["description"] == ""
        assert task["priority"] == "medium"
        assert task["status"] == "todo"
        assert task["assignee"] is None
        assert task["creator"]["name"] == "Lin"

    def test_create_with_due_date_pins_noon(self, logged_in_client):
        task = create_task(logged_in_client, name="Pay bills", due_date="2099-12-25")
        assert task["due_date"].startswith("2099-12-25T12:00")

    def test_create_rejects_bad_values(self, logged_in_client):
        for payload in (
            {"name": "x" * 201},
            {"name": "ok", "priority": "urgent"},
            {"name": "ok", "status": "blocked"},
            {"name": "ok", "assignee_id": 999},
        ):
            res = logged_in_client.post(TASKS_URL, json=payload)
            assert res.status_code == 400, payload
            assert res.json()["error"]
            assert res.json()["success"] is False

    def test_get_and_not_found(self, logged_in_client):
        task = create_task(logged_in_client, name="Read book")
        res = logged_in_client.get(f"{TASKS_URL}/{task['id']}")
        assert res.status_code == 200
        assert res.json()["task"]["name"] == "Read book"

        res = logged_in_client.get(f"{TASKS_URL}/999999")
        assert res.status_code == 404
        assert res.json()["task"] is None
        assert res.json()["error"]

    def test_list_newest_first_and_filters(self, logged_in_client):
        first = create_task(logged_in_client, name="First", priority="low")
        second = create_task(logged_in_client, name="Second", status="review")

        res = logged_in_client.get(TASKS_URL)
        assert res.status_code == 200
        ids = [t["id"] for t in res.json()["tasks"]]
        assert ids == [second["id"], first["id"]]

        res = logged_in_client.get(TASKS_URL, params={"status": "review"})
        assert [t["name"] for t in res.json()["tasks"]] == ["Second"]
        res = logged_in_client.get(TASKS_URL, params={"priority": "low"})
        assert [t["name"] for t in res.json()["tasks"]] == ["First"]
        res = logged_in_client.get(TASKS_URL, params={"q": "sec"})
        assert [t["name"] for t in res.json()["tasks"]] == ["Second"]

    def test_update_partial(self, logged_in_client):
        task = create_task(logged_in_client, name="Draft", priority="low")
        res = logged_in_client.put(
            f"{TASKS_URL}/{task['id']}", json={"name": "Final", "priority": "high"}
        )
        assert res.status_code == 200
        updated = res.json()["task"]
        assert updated["name"] == "Final"
        assert updated["priority"] == "high"
        assert updated["status"] == task["status"]
        assert updated["creator_id"] == task["creator_id"]
        assert datetime.fromisoformat(updated["updated_at"]) > datetime.fromisoformat(task["updated_at"])

        res = logged_in_client.put(f"{TASKS_URL}/999999", json={"name": "Ghost"})
        assert res.status_code == 404

    def test_assign_and_unassign(self, logged_in_client):
        users = logged_in_client.get("/api/v1/users").json()["users"]
        me = users[0]
        assert set(me) == {"id", "name"}

        task = create_task(logged_in_client, name="Assign me", assignee_id=me["id"])
        assert task["assignee"] == {"id": me["id"], "name": "Lin"}

        res = logged_in_client.put(f"{TASKS_URL}/{task['id']}", json={"assignee_id": None})
        assert res.json()["task"]["assignee"] is None

    def test_patch_status(self, logged_in_client):
        task = create_task(logged_in_client, name="Move me")
        res = logged_in_client.patch(f"{TASKS_URL}/{task['id']}/status", json={"status": "done"})
        assert res.status_code == 200
        moved = res.json()["task"]
        assert moved["status"] == "done"
        assert moved["name"] == "Move me"

        res = logged_in_client.patch(f"{TASKS_URL}/{task['id']}/status", json={"status": "bogus"})
        assert res.status_code == 400
        assert logged_in_client.get(f"{TASKS_URL}/{task['id']}").json()["task"]["status"] == "done"

    def test_delete_and_repeat(self, logged_in_client):
        task = create_task(logged_in_client, name="Trash")
        res = logged_in_client.delete(f"{TASKS_URL}/{task['id']}")
        assert res.status_code == 200
        assert res.json()["success"] is True

        res = logged_in_client.delete(f"{TASKS_URL}/{task['id']}")
        assert res.status_code == 404
        assert res.json()["success"] is False

    def test_mutations_after_logout_are_rejected(self, logged_in_client):
        task = create_task(logged_in_client, name="Keep")
        logged_in_client.post("/api/v1/auth/logout")
        res = logged_in_client.delete(f"{TASKS_URL}/{task['id']}")
        assert res.status_code == 401
        assert logged_in_client.get(f"{TASKS_URL}/{task['id']}").status_code == 200

    def test_non_object_body_is_rejected(self, logged_in_client):
        res = logged_in_client.post(TASKS_URL, json=["not", "an", "object"])
        assert res.status_code == 422
        data = res.json()
        assert data["success"] is False
        assert data["error"] == "Request validation failed"
        assert isinstance(data["detail"], list)

    def test_responses_never_leak_credentials(self, logged_in_client):
        create_task(logged_in_client, name="Secretive")
        body = logged_in_client.get(TASKS_URL).text
        assert "password" not in body
        assert "lin@example.com" not in body
        body = logged_in_client.get("/api/v1/users").text
        assert "lin@example.com" not in body


class TestViewsAPI:
    def test_board_columns(self, logged_in_client):
        create_task(logged_in_client, name="A")
        create_task(logged_in_client, name="B", status="in_progress")
        res = logged_in_client.get("/api/v1/board")
        assert res.status_code == 200
        columns = res.json()["columns"]
        assert list(columns) == ["todo", "in_progress", "review", "done"]
        assert [t["name"] for t in columns["todo"]] == ["A"]
        assert [t["name"] for t in columns["in_progress"]] == ["B"]
        assert columns["review"] == [] and columns["done"] == []

    def test_dashboard(self, logged_in_client):
        create_task(logged_in_client, name="A", priority="high")
        done = create_task(logged_in_client, name="B")
        logged_in_client.patch(f"{TASKS_URL}/{done['id']}/status", json={"status": "done"})

        res = logged_in_client.get("/api/v1/dashboard")
        assert res.status_code == 200
        data = res.json()
        assert data["error"] is None
        assert data["summary"]["total"] == 2
        assert data["summary"]["completion_rate"] == 50
        assert data["by_status"] == {"To Do": 1, "In Progress": 0, "Review": 0, "Done": 1}
        assert data["by_priority"]["High"] == 1
        assert data["by_assignee"] == {"Unassigned": 2}
        assert sum(data["by_month"].values()) == 2

    def test_empty_dashboard(self, client):
        data = client.get("/api/v1/dashboard").json()
        assert data["summary"]["total"] == 0
        assert data["summary"]["completion_rate"] == 0
        assert data["by_assignee"] == {}
