from app.models import Comment


def test_post_and_list_comments(client, make_deal, regular_user, user_headers):
    deal = make_deal()
    resp = client.post(f"/deals/{deal.id}/comments", json={"content": "  Great price!  "}, headers=user_headers)

    assert resp.status_code == 200
    comment = resp.json()["comment"]
    assert comment["content"] == "Great price!"
    assert comment["display_name"] == "member"
    assert comment["user_id"] == regular_user.id

    listed = client.get(f"/deals/{deal.id}/comments").json()["comments"]
    assert [c["id"] for c in listed] == [comment["id"]]


def test_comment_requires_login_and_content(client, make_deal, user_headers):
    deal = make_deal()
    assert client.post(f"/deals/{deal.id}/comments", json={"content": "hi"}).status_code == 401
    assert client.post(f"/deals/{deal.id}/comments", json={"content": "   "}, headers=user_headers).status_code == 400
    assert client.post(f"/deals/{deal.id}/comments", json={"content": "x" * 2001}, headers=user_headers).status_code == 400
    assert client.post("/deals/missing/comments", json={"content": "hi"}, headers=user_headers).status_code == 404


def test_only_author_can_delete(client, db, make_deal, make_user, regular_user, user_headers, headers_for):
    deal = make_deal()
    comment = Comment(deal_id=deal.id, user_id=regular_user.id, display_name="member", content="mine")
    db.add(comment)
    db.commit()
    comment_id = comment.id

    other = make_user("other@example.com")
    resp = client.delete(f"/comments/{comment_id}", headers=headers_for(other))
    assert resp.status_code == 403

    resp = client.delete(f"/comments/{comment_id}", headers=user_headers)
    assert resp.status_code == 200
    db.expire_all()
    assert db.query(Comment).count() == 0

    assert client.delete(f"/comments/{comment_id}", headers=user_headers).status_code == 404
