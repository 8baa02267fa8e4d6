from pathlib import Path

import pytest

from webapp.app import create_app


@pytest.fixture
def datasets_root(tmp_path: Path, sample_text, monkeypatch) -> Path:
    root = tmp_path / "datasets"
    (root / "input").mkdir(parents=True)
    (root / "input" / "a_example.txt").write_text(sample_text)
    monkeypatch.setenv("DATASETS_ROOT", str(root))
    return root


@pytest.fixture
def client(datasets_root):
    app = create_app()
    app.config["TESTING"] = True
    return app.test_client()


def test_health(client):
    assert client.get("/health").get_json() == {"status": "ok"}


def test_lists_datasets(client):
    payload = client.get("/datasets").get_json()
    assert payload["datasets"][0]["name"] == "a_example.txt"
    assert payload["datasets"][0]["has_output"] is False


def test_simulate_accepts_raw_text(client, sample_text):
    response = client.post("/simulate", data=sample_text, content_type="text/plain")
    assert response.status_code == 200
    payload = response.get_json()
    assert [item["name"] for item in payload["completed"]] == ["WebServer", "Logging", "WebChat"]
    assert payload["total_score"] == 33
    assert payload["submission"].startswith("3\nWebServer\nBob Anna\n")


def test_simulate_accepts_json(client):
    response = client.post("/simulate", json={"input": "1 1\nC0 0\nP0 1 10 0 1\nS 0\n"})
    payload = response.get_json()
    assert payload["completed"][0]["contributors"] == ["C0"]
    assert payload["days_simulated"] == 2


def test_simulate_reports_parse_errors(client):
    response = client.post("/simulate", json={"input": "1 0\nAnna x\n"})
    assert response.status_code == 400
    assert "invalid integer" in response.get_json()["error"]


def test_simulate_requires_input(client):
    assert client.post("/simulate", json={}).status_code == 400


def test_run_writes_output_file(client, datasets_root: Path):
    response = client.post("/run", json={"dataset": "a_example.txt"})
    assert response.status_code == 200
    assert response.get_json()["output"] == "output/a_example.txt"
    assert (datasets_root / "output" / "a_example.txt").read_text().startswith("3\n")
    assert client.get("/datasets").get_json()["datasets"][0]["has_output"] is True


@pytest.mark.parametrize("dataset", ["missing.txt", "../escape.txt"])
def test_run_rejects_unknown_datasets(client, dataset):
    response = client.post("/run", json={"dataset": dataset})
    assert response.status_code == 400


def test_serves_files_inside_root(client):
    response = client.get("/files/input/a_example.txt")
    assert response.status_code == 200
    assert response.data.startswith(b"3 3")
    response.close()
    assert client.get("/files/input/nope.txt").status_code == 404


def test_simulate_runs_inputs_with_far_deadlines(client):
    response = client.post("/simulate", json={"input": "1 1\nC 0\nP 1 5 100000 1\nS 9\n"})
    assert response.status_code == 200
    payload = response.get_json()
    assert payload["completed"] == []
    assert payload["days_simulated"] == 100006
    assert payload["skipped"][0]["reason"] == "never fully staffed"


def test_run_rejects_non_object_json(client):
    response = client.post("/run", json=["a_example.txt"])
    assert response.status_code == 400
    assert response.get_json() == {"error": "dataset is required"}
