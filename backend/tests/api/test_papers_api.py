import pytest

from utils.api_client import api_path

SUBMISSION = {
    "title": "Program Synthesis with Sketches",
    "abstract": "We synthesize programs.",
    "keywords": ["synthesis"],
    "category": "Software Engineering",
    "file_id": "placeholder/20261018/a.pdf",
    "file_name": "a.pdf",
}


def _submit(client, headers, **overrides):
    response = client.post(api_path("/papers"), json={**SUBMISSION, **overrides}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.mark.unit
def test_upload_url_then_submit(client, fake_db, make_profile, auth_for):
    author = make_profile("author")
    headers = auth_for(author)

    upload = client.post(api_path("/papers/upload-url"), headers=headers)
    assert upload.status_code == 200
    target = upload.json()["data"]
    assert target["file_id"].startswith(f"{author}/")
    assert target["content_type"] == "application/pdf"

    paper = _submit(client, headers, file_id=target["file_id"])
    assert paper["status"] == "submitted"
    assert paper["version"] == 1
    assert paper["file_id"] == target["file_id"]


@pytest.mark.unit
def test_submission_notifies_each_editor_once(client, fake_db, make_profile, auth_for):
    editors = [make_profile("editor") for _ in range(2)]
    author = make_profile("author")
    paper = _submit(client, auth_for(author))

    notes = fake_db.rows("notifications")
    assert sorted(n["user_id"] for n in notes) == sorted(editors)
    assert {n["paper_id"] for n in notes} == {paper["id"]}


@pytest.mark.unit
def test_submission_with_zero_editors_still_succeeds(client, fake_db, make_profile, auth_for):
    paper = _submit(client, auth_for(make_profile("author")))
    assert paper["id"]
    assert fake_db.rows("notifications") == []


@pytest.mark.unit
def test_submission_validation(client, make_profile, auth_for):
    headers = auth_for(make_profile("author"))
    response = client.post(api_path("/papers"), json={**SUBMISSION, "title": "  "}, headers=headers)
    assert response.status_code == 422
    response = client.post(api_path("/papers"), json={k: v for k, v in SUBMISSION.items() if k != "abstract"}, headers=headers)
    assert response.status_code == 422


@pytest.mark.unit
def test_list_papers_is_scoped(client, make_profile, auth_for):
    a1, a2, editor = make_profile("author"), make_profile("author"), make_profile("editor")
    _submit(client, auth_for(a1), title="First")
    _submit(client, auth_for(a2), title="Second")

    mine = client.get(api_path("/papers"), headers=auth_for(a1)).json()["data"]
    assert [p["title"] for p in mine] == ["First"]

    everything = client.get(api_path("/papers"), headers=auth_for(editor)).json()["data"]
    assert sorted(p["title"] for p in everything) == ["First", "Second"]

    filtered = client.get(api_path("/papers?status=accepted"), headers=auth_for(editor)).json()["data"]
    assert filtered == []


@pytest.mark.unit
def test_author_without_profile_is_listed_by_email(client, fake_db, make_profile, auth_for):
    author = make_profile(None)
    editor = make_profile("editor")
    _submit(client, auth_for(author), title="Orphan")

    mine = client.get(api_path("/papers"), headers=auth_for(author)).json()["data"]
    assert [p["author_name"] for p in mine] == [f"{author[:8]}@example.com"]

    everything = client.get(api_path("/papers"), headers=auth_for(editor)).json()["data"]
    assert everything[0]["author_name"] == f"{author[:8]}@example.com"


@pytest.mark.unit
def test_list_papers_rejects_unknown_status(client, make_profile, auth_for):
    response = client.get(api_path("/papers?status=archived"), headers=auth_for(make_profile("editor")))
    assert response.status_code == 422


@pytest.mark.unit
def test_search(client, make_profile, auth_for):
    headers = auth_for(make_profile("author"))
    _submit(client, headers, title="Neural Program Repair")
    _submit(client, headers, title="Static Analysis at Scale", category="Computer Science")

    hits = client.get(api_path("/papers/search?q=program"), headers=headers).json()["data"]
    assert [p["title"] for p in hits] == ["Neural Program Repair"]

    none = client.get(api_path("/papers/search?q=analysis&category=Machine%20Learning"), headers=headers)
    assert none.json()["data"] == []

    assert client.get(api_path("/papers/search?q="), headers=headers).status_code == 422


@pytest.mark.unit
def test_get_paper_detail_and_404(client, make_profile, auth_for):
    author = make_profile("author", first_name="Barbara", last_name="Liskov")
    headers = auth_for(author)
    paper = _submit(client, headers)

    detail = client.get(api_path(f"/papers/{paper['id']}"), headers=headers).json()["data"]
    assert detail["author_name"] == "Barbara Liskov"
    assert detail["reviews"] == []
    assert detail["editorial_decisions"] == []
    assert [v["version"] for v in detail["versions"]] == [1]
    assert detail["file_url"]

    assert client.get(api_path("/papers/does-not-exist"), headers=headers).status_code == 404


@pytest.mark.unit
def test_status_update_authorization_and_transitions(client, fake_db, make_profile, auth_for):
    author, editor = make_profile("author"), make_profile("editor")
    paper = _submit(client, auth_for(author))
    url = api_path(f"/papers/{paper['id']}/status")

    assert client.patch(url, json={"status": "accepted"}, headers=auth_for(author)).status_code == 403
    assert client.patch(url, json={"status": "accepted"}, headers=auth_for(make_profile("reviewer"))).status_code == 403

    assert client.patch(url, json={"status": "published"}, headers=auth_for(editor)).status_code == 409

    ok = client.patch(url, json={"status": "accepted"}, headers=auth_for(editor))
    assert ok.status_code == 200
    assert ok.json()["data"]["editor_id"] == editor

    published = client.patch(url, json={"status": "published"}, headers=auth_for(editor)).json()["data"]
    assert published["published_date"]

    assert client.patch(url, json={"status": "submitted"}, headers=auth_for(editor)).status_code == 409
    forced = client.patch(url, json={"status": "submitted", "override": True}, headers=auth_for(editor))
    assert forced.status_code == 200

    author_notes = [n["type"] for n in fake_db.rows("notifications") if n["user_id"] == author]
    assert "paper_published" in author_notes


@pytest.mark.unit
def test_status_update_unknown_paper_is_404(client, make_profile, auth_for):
    response = client.patch(
        api_path("/papers/missing/status"),
        json={"status": "under_review"},
        headers=auth_for(make_profile("editor")),
    )
    assert response.status_code == 404


@pytest.mark.unit
def test_decision_and_revision_cycle(client, fake_db, make_profile, auth_for):
    author, editor = make_profile("author"), make_profile("editor")
    paper = _submit(client, auth_for(author))
    pid = paper["id"]

    decision = client.post(
        api_path(f"/papers/{pid}/decisions"),
        json={"decision": "minor_revision", "comments": "Tighten the related work"},
        headers=auth_for(editor),
    )
    assert decision.status_code == 201
    assert decision.json()["data"]["paper"]["status"] == "revision_requested"

    stranger = client.post(
        api_path(f"/papers/{pid}/revisions"),
        json={"file_id": "x/v2.pdf", "file_name": "v2.pdf"},
        headers=auth_for(make_profile("author")),
    )
    assert stranger.status_code == 404

    revised = client.post(
        api_path(f"/papers/{pid}/revisions"),
        json={"file_id": f"{author}/v2.pdf", "file_name": "v2.pdf", "changes": "Rewrote section 2"},
        headers=auth_for(author),
    )
    assert revised.status_code == 201
    assert revised.json()["data"]["version"] == 2
    assert revised.json()["data"]["status"] == "submitted"

    again = client.post(
        api_path(f"/papers/{pid}/revisions"),
        json={"file_id": f"{author}/v3.pdf", "file_name": "v3.pdf"},
        headers=auth_for(author),
    )
    assert again.status_code == 409

    detail = client.get(api_path(f"/papers/{pid}"), headers=auth_for(author)).json()["data"]
    assert [v["version"] for v in detail["versions"]] == [1, 2]
    assert [d["decision"] for d in detail["editorial_decisions"]] == ["minor_revision"]


@pytest.mark.unit
def test_decision_validation_and_authorization(client, make_profile, auth_for):
    author, editor = make_profile("author"), make_profile("editor")
    pid = _submit(client, auth_for(author))["id"]
    url = api_path(f"/papers/{pid}/decisions")

    assert client.post(url, json={"decision": "maybe", "comments": "?"}, headers=auth_for(editor)).status_code == 422
    assert client.post(url, json={"decision": "accept", "comments": "ok"}, headers=auth_for(author)).status_code == 403
