from __future__ import annotations

from io import BytesIO

import openpyxl
import pytest
from fastapi.testclient import TestClient

from taskboard.adapters.memory import MemoryAdapter
from taskboard.api.dataset import XLSX_MEDIA_TYPE
from taskboard.codecs.json_codec import dumps_dataset
from taskboard.core.config import Settings
from taskboard.main import create_app
from taskboard.schemas.dataset import TaskDataSet
from taskboard.schemas.tasks import Task
from taskboard.services.defaults import create_default_fields, create_default_views
from taskboard.services.projection import UNASSIGNED_COLUMN_ID
from taskboard.services.workspace import Workspace


def _dataset() -> TaskDataSet:
    return TaskDataSet(
        fields=create_default_fields(),
        tasks=[
            Task(
                id="t1",
                field_values={
                    "title": "Write plan",
                    "status": "in_progress",
                    "start_date": "2024-05-01",
                    "due_date": "2024-05-03",
                },
            ),
            Task(
                id="t2",
                field_values={
                    "title": "Review plan",
                    "status": "done",
                    "due_date": "2024-05-04",
                    "dependencies": ["t1"],
                },
            ),
            Task(id="t3", field_values={"title": "Backlog"}),
        ],
        view_configs=create_default_views(),
    )


@pytest.fixture
def adapter() -> MemoryAdapter:
    memory = MemoryAdapter(seed_demo_data=False)
    memory.connect()
    return memory


@pytest.fixture
def workspace() -> Workspace:
    return Workspace(_dataset())


@pytest.fixture
def client(workspace: Workspace, adapter: MemoryAdapter) -> TestClient:
    app = create_app(workspace=workspace, adapter=adapter, settings=Settings(autosave=False))
    return TestClient(app)


def test_health_reports_workspace_state(client: TestClient) -> None:
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {
        "ok": True,
        "loaded": True,
        "dirty": False,
        "data_source": "memory",
        "tasks": 3,
    }


def test_field_lifecycle(client: TestClient, workspace: Workspace) -> None:
    created = client.post("/fields", json={"name": "Budget", "type": "number"})
    assert created.status_code == 200
    budget = created.json()
    assert budget["type"] == "number"
    assert budget["is_system"] is False

    renamed = client.patch(f"/fields/{budget['id']}", json={"name": "Cost"})
    assert renamed.json()["name"] == "Cost"

    assert client.patch(f"/fields/{budget['id']}", json={"type": "text"}).status_code == 422
    assert client.patch("/fields/missing", json={"name": "x"}).status_code == 404

    deleted = client.delete(f"/fields/{budget['id']}")
    assert deleted.status_code == 204
    assert budget["id"] not in {field["id"] for field in client.get("/fields").json()}
    assert workspace.is_dirty is True


def test_system_field_cannot_be_deleted(client: TestClient) -> None:
    resp = client.delete("/fields/title")

    assert resp.status_code == 409
    assert resp.json()["detail"] == "System fields cannot be deleted"


def test_options_only_on_option_fields(client: TestClient) -> None:
    resp = client.put("/fields/title/options", json={"options": [{"id": "a", "label": "A"}]})
    assert resp.status_code == 422

    resp = client.put(
        "/fields/priority/options",
        json={"options": [{"id": "high", "label": "Urgent", "color": "not-a-color"}]},
    )
    assert resp.status_code == 200
    assert [option["label"] for option in resp.json()["options"]] == ["Urgent"]


def test_field_operators(client: TestClient) -> None:
    resp = client.get("/fields/tags/operators")
    assert resp.json()["operators"][:2] == ["in", "not_in"]


def test_task_lifecycle(client: TestClient) -> None:
    created = client.post("/tasks", json={"field_values": {"title": "New", "progress": "40"}})
    assert created.status_code == 200
    task = created.json()
    assert task["field_values"]["progress"] == 40
    assert task["created_at"] == task["updated_at"]

    updated = client.patch(f"/tasks/{task['id']}", json={"field_values": {"progress": None}})
    assert "progress" not in updated.json()["field_values"]

    assert client.get(f"/tasks/{task['id']}").status_code == 200
    assert client.delete(f"/tasks/{task['id']}").status_code == 204
    assert client.get(f"/tasks/{task['id']}").status_code == 404
    assert client.delete(f"/tasks/{task['id']}").status_code == 404


def test_invalid_task_value_returns_field_error(client: TestClient) -> None:
    resp = client.patch("/tasks/t1", json={"field_values": {"progress": "lots"}})

    assert resp.status_code == 422
    assert resp.json()["detail"]["field_id"] == "progress"


def test_circular_dependency_is_rejected(client: TestClient) -> None:
    resp = client.patch("/tasks/t1", json={"field_values": {"dependencies": ["t2"]}})

    assert resp.status_code == 422
    assert resp.json()["detail"]["field_id"] == "dependencies"


def test_bulk_delete_and_import(client: TestClient) -> None:
    deleted = client.post("/tasks/bulk-delete", json={"task_ids": ["t3", "missing"]})
    assert deleted.json() == {"deleted": 1}

    imported = client.post(
        "/tasks/import",
        json={
            "tasks": [{"id": "t1", "field_values": {"title": "Imported", "budget": 5}}],
            "fields": [{"id": "budget", "name": "Budget", "type": "number"}],
        },
    )
    body = imported.json()
    assert body["imported"] == 1
    assert body["added_field_ids"] == ["budget"]
    assert body["task_ids"][0] != "t1"
    assert len(client.get("/tasks").json()) == 3


def test_active_view_and_sort_toggle(client: TestClient) -> None:
    assert client.get("/views/active").json()["id"] == "view-table"

    resp = client.put("/views/active", json={"view_type": "kanban"})
    assert resp.json()["id"] == "view-kanban"
    assert client.put("/views/active", json={"view_id": "missing"}).status_code == 404
    assert client.put("/views/active", json={}).status_code == 422

    toggled = client.post("/views/active/sort-toggle", json={"field_id": "title"})
    assert toggled.json()["sorts"] == [{"field_id": "title", "direction": "asc"}]


def test_view_crud_and_last_view_guard(client: TestClient) -> None:
    created = client.post("/views", json={"name": "Mine", "type": "calendar"})
    view_id = created.json()["id"]
    renamed = client.patch(f"/views/{view_id}", json={"name": "Renamed"})
    assert renamed.json()["name"] == "Renamed"
    assert client.patch(f"/views/{view_id}", json={"id": "x"}).status_code == 422

    for view in client.get("/views").json()[:-1]:
        assert client.delete(f"/views/{view['id']}").status_code == 204

    last = client.get("/views").json()
    assert [view["id"] for view in last] == [view_id]
    resp = client.delete(f"/views/{view_id}")
    assert resp.status_code == 409
    assert resp.json()["detail"] == "The last view cannot be deleted"
    assert client.delete("/views/missing").status_code == 404


def test_quick_filters_on_active_view(client: TestClient) -> None:
    rows = client.get("/projection").json()["tasks"]
    assert [task["id"] for task in rows] == ["t1", "t3"]

    client.put("/views/active/quick-filters/hide-done", json={"enabled": False})
    resp = client.put(
        "/views/active/quick-filters/due",
        json={"preset": "today", "reference": "2024-05-04"},
    )

    assert resp.status_code == 200
    assert [task["id"] for task in client.get("/projection").json()["tasks"]] == ["t2"]


def test_projection_endpoints(client: TestClient) -> None:
    table = client.get("/projection", params={"view_id": "view-table"}).json()
    assert [field["id"] for field in table["fields"]][:2] == ["title", "status"]
    assert client.get("/projection", params={"view_id": "missing"}).status_code == 404

    kanban = client.get("/projection/kanban", params={"view_id": "view-kanban"}).json()
    columns = {
        column["id"]: [task["id"] for task in column["tasks"]] for column in kanban["columns"]
    }
    assert kanban["group_field_id"] == "status"
    assert columns["in_progress"] == ["t1"]
    assert columns["done"] == ["t2"]
    assert columns[UNASSIGNED_COLUMN_ID] == ["t3"]

    calendar = client.get("/projection/calendar", params={"view_id": "view-calendar"}).json()
    assert sorted(calendar["days"]) == ["2024-05-03", "2024-05-04"]

    gantt = client.get("/projection/gantt", params={"view_id": "view-gantt"}).json()
    assert [bar["task_id"] for bar in gantt["bars"]] == ["t1", "t2"]
    assert gantt["bars"][1]["start"] == gantt["bars"][1]["end"] == "2024-05-04"
    assert gantt["dependencies"] == [{"predecessor": "t1", "successor": "t2"}]


def test_dataset_export_uses_file_shape(client: TestClient) -> None:
    body = client.get("/dataset").json()

    assert body["version"] == "1.0.0"
    assert body["metadata"]["source"] == "memory"
    assert len(body["viewConfigs"]) == 4
    assert body["tasks"][0]["fieldValues"]["title"] == "Write plan"


def test_dataset_replace(client: TestClient, workspace: Workspace) -> None:
    replacement = TaskDataSet(
        fields=create_default_fields(),
        tasks=[Task(id="only", field_values={"title": "Only", "ghost": 1})],
    )

    resp = client.put("/dataset", content=dumps_dataset(replacement))

    assert resp.status_code == 200
    assert [task["id"] for task in resp.json()["tasks"]] == ["only"]
    assert workspace.tasks.get("only") is not None
    assert "ghost" not in resp.json()["tasks"][0]["fieldValues"]
    assert len(resp.json()["viewConfigs"]) == 4


def test_dataset_replace_rejects_malformed_payload(
    client: TestClient,
    workspace: Workspace,
) -> None:
    resp = client.put("/dataset", content="[]")

    assert resp.status_code == 422
    assert resp.json()["detail"] == "Invalid data: root is not an object"
    assert len(workspace.tasks) == 3


def test_sheets_round_trip(client: TestClient, workspace: Workspace) -> None:
    exported = client.get("/dataset/sheets")
    assert exported.headers["content-type"] == XLSX_MEDIA_TYPE
    book = openpyxl.load_workbook(BytesIO(exported.content))
    assert book["Tasks"]["A1"].value == "Title"

    resp = client.put("/dataset/sheets", content=exported.content)

    assert resp.status_code == 200
    titles = sorted(task.field_values["title"] for task in workspace.tasks)
    assert titles == ["Backlog", "Review plan", "Write plan"]


def test_save_persists_through_adapter(
    client: TestClient,
    workspace: Workspace,
    adapter: MemoryAdapter,
) -> None:
    client.post("/tasks", json={"field_values": {"title": "Saved"}})
    assert workspace.is_dirty is True

    resp = client.post("/dataset/save")

    assert resp.status_code == 200
    assert resp.json()["saved"] is True
    assert resp.json()["data_source"] == "memory"
    assert workspace.is_dirty is False
    assert len(adapter.load().tasks) == 4


def test_save_without_adapter_conflicts(workspace: Workspace) -> None:
    client = TestClient(create_app(workspace=workspace, settings=Settings(autosave=False)))

    resp = client.post("/dataset/save")

    assert resp.status_code == 409
    assert client.get("/health").json()["data_source"] is None


def test_autosave_persists_mutations(workspace: Workspace, adapter: MemoryAdapter) -> None:
    client = TestClient(create_app(workspace=workspace, adapter=adapter, settings=Settings()))

    client.post("/tasks", json={"field_values": {"title": "Autosaved"}})

    assert workspace.is_dirty is False
    assert "Autosaved" in {task.field_values.get("title") for task in adapter.load().tasks}
