import re

from fastapi.testclient import TestClient

from social_downloader.main import create_app

from conftest import FakeFetcher, wait_for_terminal

ALICE = {"platform": "tiktok", "downloadType": "username", "value": "@alice", "limit": 5}


def test_create_returns_download_id(client):
    response = client.post("/api/downloads", json=ALICE)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert isinstance(body["downloadId"], str) and body["downloadId"]


def test_new_download_is_immediately_pollable(slow_client):
    download_id = slow_client.post("/api/downloads", json=ALICE).json()["downloadId"]

    response = slow_client.get(f"/api/downloads/{download_id}")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["download"]["id"] == download_id
    assert body["download"]["status"] in ("pending", "processing")
    assert body["download"]["zipUrl"] is None
    assert body["download"]["excelUrl"] is None


def test_username_download_completes_with_five_files(client):
    download_id = client.post("/api/downloads", json=ALICE).json()["downloadId"]

    body = wait_for_terminal(client, download_id)

    download = body["download"]
    assert download["status"] == "completed"
    assert download["platform"] == "tiktok"
    assert download["downloadType"] == "username"
    assert download["totalFiles"] == 5
    assert download["completedFiles"] == 5
    assert download["progress"] == 100
    assert download["zipUrl"] == f"/api/downloads/{download_id}/zip"
    assert download["excelUrl"] == f"/api/downloads/{download_id}/excel"
    assert "createdAt" in download

    files = body["files"]
    assert len(files) == 5
    for n, file in enumerate(files, start=1):
        assert re.fullmatch(rf"alice_[a-z]+_00{n}\.mp4", file["filename"])
        assert file["downloadId"] == download_id
        assert file["url"] == f"/downloads/{download_id}/{file['filename']}"


def test_bulk_download_file_count_in_range(client):
    payload = {"platform": "tiktok", "downloadType": "bulk", "value": "@bob"}
    download_id = client.post("/api/downloads", json=payload).json()["downloadId"]

    body = wait_for_terminal(client, download_id)

    assert body["download"]["status"] == "completed"
    assert 20 <= len(body["files"]) < 100
    assert body["download"]["totalFiles"] == len(body["files"])


def test_terminal_polls_are_byte_identical(client):
    download_id = client.post("/api/downloads", json=ALICE).json()["downloadId"]
    wait_for_terminal(client, download_id)

    first = client.get(f"/api/downloads/{download_id}").content
    second = client.get(f"/api/downloads/{download_id}").content

    assert first == second


def test_failed_download_reports_failure_through_polling(test_settings):
    app = create_app(settings=test_settings, fetcher=FakeFetcher(fail_at=2))
    with TestClient(app) as client:
        response = client.post("/api/downloads", json=ALICE)
        assert response.status_code == 200

        body = wait_for_terminal(client, response.json()["downloadId"])

    assert body["download"]["status"] == "failed"
    assert body["download"]["completedFiles"] == 1
    assert "FetchError" in body["download"]["error"]
    assert len(body["files"]) == 1


def test_unknown_id_returns_404(client):
    response = client.get("/api/downloads/not-a-real-id")

    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert "not found" in body["error"].lower()


def test_missing_value_is_rejected_without_creating_job(client):
    response = client.post("/api/downloads", json={"platform": "tiktok", "downloadType": "username"})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "value" in body["error"]
    assert client.get("/api/downloads").json()["downloads"] == []


def test_invalid_requests_return_400(client):
    bad_payloads = [
        {"platform": "myspace", "downloadType": "username", "value": "@alice"},
        {"platform": "tiktok", "downloadType": "", "value": "@alice"},
        {"platform": "tiktok", "downloadType": "username", "value": "   "},
        {"platform": "tiktok", "downloadType": "username", "value": "@alice", "limit": 0},
        {"platform": "instagram", "downloadType": "bulk", "value": "@alice"},
    ]
    for payload in bad_payloads:
        response = client.post("/api/downloads", json=payload)
        assert response.status_code == 400, payload
        assert response.json()["success"] is False

    response = client.post(
        "/api/downloads", content=b"not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400

    assert client.get("/api/downloads").json()["downloads"] == []


def test_list_downloads_newest_first(slow_client):
    ids = [
        slow_client.post("/api/downloads", json={**ALICE, "value": f"user{i}"}).json()["downloadId"]
        for i in range(3)
    ]

    response = slow_client.get("/api/downloads")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert [d["id"] for d in body["downloads"]] == list(reversed(ids))


def test_status_never_regresses_while_polling(client):
    download_id = client.post("/api/downloads", json={**ALICE, "limit": 20}).json()["downloadId"]
    order = ["pending", "processing", "completed"]
    last = 0

    body = client.get(f"/api/downloads/{download_id}").json()
    while True:
        download = body["download"]
        assert order.index(download["status"]) >= last
        assert 0 <= download["completedFiles"] <= download["totalFiles"]
        last = order.index(download["status"])
        if download["status"] == "completed":
            break
        body = client.get(f"/api/downloads/{download_id}").json()

    for _ in range(3):
        assert client.get(f"/api/downloads/{download_id}").json()["download"]["status"] == "completed"


def test_oversized_limit_is_capped_at_fifty(client):
    response = client.post("/api/downloads", json={**ALICE, "limit": 5000})
    assert response.status_code == 200

    body = wait_for_terminal(client, response.json()["downloadId"])

    assert body["download"]["status"] == "completed"
    assert body["download"]["limit"] == 5000
    assert body["download"]["totalFiles"] == 50
    assert len(body["files"]) == 50


def test_omitted_limit_is_stored_as_ten(client):
    payload = {"platform": "tiktok", "downloadType": "keyword", "value": "cats"}
    download_id = client.post("/api/downloads", json=payload).json()["downloadId"]

    body = wait_for_terminal(client, download_id)

    assert body["download"]["limit"] == 10
    assert body["download"]["totalFiles"] == 10
