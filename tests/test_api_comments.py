from helpers import AM, DEV, USER


def _offer(client):
    return client.post("/offers", json={"name": "Website"}, headers=DEV).json()


def test_add_and_list_comments(client):
    o = _offer(client)
    r = client.post(f"/offers/{o['id']}/comments", json={"text": "Call back Monday"}, headers=USER)
    assert r.status_code == 201
    comment = r.json()
    assert comment["offerId"] == o["id"]
    assert comment["text"] == "Call back Monday"

    client.post("/offers/99/comments", json={"text": "elsewhere"}, headers=USER)
    listed = client.get(f"/offers/{o['id']}/comments", headers=USER).json()
    assert listed == [comment]


def test_comment_text_is_required(client):
    o = _offer(client)
    for body in ({}, {"text": ""}, {"text": "   "}):
        r = client.post(f"/offers/{o['id']}/comments", json=body, headers=USER)
        assert r.status_code == 400
        assert r.json() == {"message": "Comment text is required"}


def test_update_and_delete_comment(client):
    o = _offer(client)
    c = client.post(f"/offers/{o['id']}/comments", json={"text": "v1"}, headers=USER).json()

    r = client.put(f"/offers/{o['id']}/comments/{c['id']}", json={"text": "v2"}, headers=DEV)
    assert r.status_code == 200
    assert r.json()["message"] == "Comment successfully updated"
    assert r.json()["updatedComment"]["text"] == "v2"

    r = client.delete(f"/offers/{o['id']}/comments/{c['id']}", headers=AM)
    assert r.status_code == 200
    assert r.json()["message"] == "Comment successfully deleted"
    assert r.json()["deletedComment"]["text"] == "v2"
    assert client.get(f"/offers/{o['id']}/comments", headers=USER).json() == []


def test_comment_must_belong_to_offer(client):
    a = _offer(client)
    b = _offer(client)
    c = client.post(f"/offers/{a['id']}/comments", json={"text": "mine"}, headers=USER).json()

    r = client.put(f"/offers/{b['id']}/comments/{c['id']}", json={"text": "hijack"}, headers=DEV)
    assert r.status_code == 404
    assert r.json() == {"message": "Comment not found"}
    assert client.delete(f"/offers/{b['id']}/comments/{c['id']}", headers=AM).status_code == 404


def test_sweep_drops_comments_of_deleted_offers(client):
    o = _offer(client)
    client.post(f"/offers/{o['id']}/comments", json={"text": "orphan soon"}, headers=USER)
    client.delete(f"/offers/{o['id']}", headers=AM)

    result = client.portal.call(client.app.state.sweeper.sweep)
    assert result == {"offers": [], "comments": ["1"]}
    assert client.get(f"/offers/{o['id']}/comments", headers=USER).json() == []


def test_comment_and_tag_text_are_trimmed_alike(client):
    o = _offer(client)
    c = client.post(f"/offers/{o['id']}/comments", json={"text": "  call back  "}, headers=USER).json()
    assert c["text"] == "call back"
    r = client.put(f"/offers/{o['id']}/comments/{c['id']}", json={"text": " v2 "}, headers=DEV)
    assert r.json()["updatedComment"]["text"] == "v2"

    f = client.post(f"/offers/{o['id']}/files", files={"file": ("a.txt", b"x", "text/plain")}, headers=DEV).json()
    tag = client.post(f"/offers/{o['id']}/files/{f['id']}/tags", json={"text": "  call back  "}, headers=USER).json()
    assert tag["text"] == c["text"]
