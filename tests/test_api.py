"""HTTP surface: status codes and payload shapes, with the engine replaced by a stub."""
from datetime import datetime, timezone
from types import SimpleNamespace

from fastapi.testclient import TestClient

from postflow.main import app
from postflow.models.schemas import DecisionAction
from postflow.routes.workflows import get_engine
from postflow.workflow.errors import InvalidDecision, InvalidResumeState, UnknownInstance

NOW = datetime(2030, 1, 1, tzinfo=timezone.utc)


def _record(instance_id: str, status: str) -> SimpleNamespace:
    return SimpleNamespace(
        id=instance_id,
        status=status,
        stage="awaiting_review" if status == "suspended" else "closed",
        suspended=status == "suspended",
        flags=[],
        error=None,
        cancel_requested=False,
        state={"draft": "hello"},
        created_at=NOW,
        updated_at=NOW,
        completed_at=None,
    )


class StubEngine:
    def __init__(self):
        self.created = []
        self.ran = []
        self.decisions = []
        self.resume_error = None

    async def create(self, links, overrides):
        self.created.append((links, overrides))
        return "inst1"

    async def run(self, instance_id):
        self.ran.append(instance_id)
        return _record(instance_id, "suspended")

    async def resume(self, instance_id, decision):
        if instance_id == "missing":
            raise UnknownInstance(instance_id)
        if self.resume_error:
            raise self.resume_error
        self.decisions.append(decision)
        return _record(instance_id, "completed")

    async def cancel(self, instance_id):
        return _record(instance_id, "cancelled")

    async def get(self, instance_id):
        if instance_id == "missing":
            raise UnknownInstance(instance_id)
        return _record(instance_id, "suspended")

    async def list_instances(self, status=None, limit=50):
        return [_record("inst1", status or "suspended")]


def _client(engine: StubEngine) -> TestClient:
    app.dependency_overrides[get_engine] = lambda: engine
    return TestClient(app)


def teardown_function():
    app.dependency_overrides.clear()


def test_start_returns_202_and_runs_in_background():
    engine = StubEngine()
    client = _client(engine)

    resp = client.post(
        "/workflows",
        json={"links": ["https://a.example/post"], "configOverrides": {"skipDedup": True, "textOnly": True}},
    )

    assert resp.status_code == 202
    assert resp.json() == {"instance_id": "inst1", "status": "created"}
    links, overrides = engine.created[0]
    assert links == ["https://a.example/post"]
    assert overrides.skip_dedup is True and overrides.text_only is True
    assert engine.ran == ["inst1"]


def test_start_requires_links():
    resp = _client(StubEngine()).post("/workflows", json={"links": []})
    assert resp.status_code == 422


def test_resume_maps_errors_to_status_codes():
    engine = StubEngine()
    client = _client(engine)

    ok = client.post("/workflows/inst1/resume", json={"action": "edit", "editedFields": {"post_text": "new"}})
    assert ok.status_code == 200
    assert ok.json()["status"] == "completed"
    assert engine.decisions[0].action == DecisionAction.EDIT
    assert engine.decisions[0].edited_fields.post_text == "new"

    assert client.post("/workflows/missing/resume", json={"action": "approve"}).status_code == 404

    engine.resume_error = InvalidResumeState("inst1", "completed")
    assert client.post("/workflows/inst1/resume", json={"action": "approve"}).status_code == 409

    engine.resume_error = InvalidDecision("cannot approve an empty post")
    assert client.post("/workflows/inst1/resume", json={"action": "approve"}).status_code == 422

    assert client.post("/workflows/inst1/resume", json={"action": "publish"}).status_code == 422


def test_get_cancel_and_list():
    client = _client(StubEngine())

    got = client.get("/workflows/inst1")
    assert got.status_code == 200
    assert got.json()["suspended"] is True
    assert client.get("/workflows/missing").status_code == 404
    assert client.post("/workflows/inst1/cancel").json()["status"] == "cancelled"
    assert [r["status"] for r in client.get("/workflows", params={"status": "committing"}).json()] == ["committing"]


def test_health():
    assert TestClient(app).get("/health").json() == {"status": "ok"}
