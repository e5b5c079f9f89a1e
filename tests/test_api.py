from datetime import timedelta

from dovi.models.enums import ReviewStatus, UserRole

from tests.factories import headers_for, make_category, make_company, make_review, make_user


def _review_body(slug="acme", **overrides):
    body = {
        "companySlug": slug,
        "rating": 5,
        "title": "Great place",
        "text": "Friendly staff and quick service.",
    }
    body.update(overrides)
    return body


def test_review_lifecycle(client, db):
    company = make_company(db, slug="acme")
    author = make_user(db)
    reader = make_user(db)
    admin = make_user(db, role=UserRole.admin)

    r = client.post("/reviews", json=_review_body(), headers=headers_for(author))
    assert r.status_code == 201, r.text
    review = r.json()
    assert review["status"] == "pending"
    assert (review["likesCount"], review["dislikesCount"]) == (0, 0)

    # Pending: invisible to the public, no reactions.
    assert client.get(f"/reviews/{review['id']}").status_code == 404
    assert client.get(f"/reviews/{review['id']}", headers=headers_for(author)).status_code == 200
    r = client.post(f"/reviews/{review['id']}/react", json={"value": 1}, headers=headers_for(reader))
    assert r.status_code == 409
    assert r.json()["errorCode"] == "REVIEW_NOT_PUBLISHED"
    assert client.get("/companies/acme/reviews").json()["total"] == 0

    r = client.post(f"/admin/reviews/{review['id']}/approve", headers=headers_for(admin))
    assert r.status_code == 200, r.text
    assert r.json() == {"success": True, "companySlug": "acme", "status": "approved"}

    body = client.get("/companies/acme").json()
    assert body["rating"] == 5.0
    assert body["reviewCount"] == 1
    assert body["ratingDistribution"][4] == {"rating": 5, "count": 1, "percentage": 100}

    r = client.post(f"/reviews/{review['id']}/react", json={"value": 1}, headers=headers_for(reader))
    assert r.json() == {"success": True, "likesCount": 1, "dislikesCount": 0, "companySlug": "acme", "userReaction": 1}
    r = client.post(f"/reviews/{review['id']}/react", json={"value": -1}, headers=headers_for(reader))
    assert (r.json()["likesCount"], r.json()["dislikesCount"], r.json()["userReaction"]) == (0, 1, -1)

    detail = client.get(f"/reviews/{review['id']}", headers=headers_for(reader)).json()
    assert detail["userReaction"] == -1
    assert detail["company"]["slug"] == "acme"

    r = client.post(f"/reviews/{review['id']}/react", json={"value": 1}, headers=headers_for(author))
    assert r.status_code == 403
    assert r.json()["errorCode"] == "CANNOT_REACT_TO_OWN_REVIEW"

    r = client.post(f"/reviews/{review['id']}/report", json={"reason": "spam"}, headers=headers_for(reader))
    assert r.json() == {"success": True}
    reports = client.get("/admin/reports", headers=headers_for(admin)).json()
    assert reports["total"] == 1
    report_id = reports["items"][0]["id"]

    r = client.post(f"/admin/reports/{report_id}/resolve", json={"action": "delete"}, headers=headers_for(admin))
    assert r.json() == {"success": True, "companySlug": "acme", "action": "delete", "alreadyResolved": False}

    body = client.get("/companies/acme").json()
    assert (body["rating"], body["reviewCount"]) == (0.0, 0)
    assert client.get(f"/reviews/{review['id']}", headers=headers_for(admin)).status_code == 404

    r = client.post(f"/admin/reports/{report_id}/resolve", json={"action": "delete"}, headers=headers_for(admin))
    assert r.status_code == 200
    assert r.json()["alreadyResolved"] is True


def test_submission_errors_carry_fields(client, db):
    make_company(db, slug="acme")
    fresh = make_user(db, registered_ago=timedelta(minutes=30))
    unconfirmed = make_user(db, activated=False)
    user = make_user(db)

    r = client.post("/reviews", json=_review_body(), headers=headers_for(unconfirmed))
    assert (r.status_code, r.json()["errorCode"]) == (403, "EMAIL_NOT_ACTIVATED")

    r = client.post("/reviews", json=_review_body(), headers=headers_for(fresh))
    assert r.status_code == 429
    assert r.json()["errorCode"] == "REGISTER_COOLDOWN"
    assert r.json()["remainingMinutes"] == 30

    r = client.post("/reviews", json=_review_body(text="too short"), headers=headers_for(user))
    assert r.status_code == 400
    assert r.json() == {
        "errorCode": "TEXT_TOO_SHORT",
        "message": "Review text is too short",
        "minReviewLength": 10,
        "currentLength": 9,
    }

    r = client.post("/reviews", json=_review_body(slug="ghost"), headers=headers_for(user))
    assert r.status_code == 404

    assert client.post("/reviews", json=_review_body(), headers=headers_for(user)).status_code == 201
    r = client.post("/reviews", json=_review_body(text="Another take, same company."), headers=headers_for(user))
    assert (r.status_code, r.json()["errorCode"]) == (409, "REVIEW_ALREADY_EXISTS")

    make_company(db, slug="other")
    r = client.post("/reviews", json=_review_body(slug="other"), headers=headers_for(user))
    assert (r.status_code, r.json()["errorCode"]) == (409, "DUPLICATE_REVIEW_TEXT")


def test_review_eligibility(client, db):
    company = make_company(db)
    user = make_user(db)
    assert client.get("/me/review-eligibility", headers=headers_for(user)).json()["canCreate"] is True

    for _ in range(5):
        make_review(db, user=user, company=company, status=ReviewStatus.rejected)
    body = client.get("/me/review-eligibility", headers=headers_for(user)).json()
    assert body["canCreate"] is False
    assert body["errorCode"] == "REVIEWS_LIMIT_EXCEEDED"
    assert body["reviewsPerWindow"] == 5
    assert body["remainingMinutes"] >= 1


def test_company_page_cache_is_invalidated_on_approve(client, db):
    company = make_company(db, slug="acme")
    pending = make_review(db, user=make_user(db), company=company, rating=4, status=ReviewStatus.pending)
    admin = make_user(db, role=UserRole.admin)

    assert client.get("/companies/acme").json()["reviewCount"] == 0
    assert client.get("/companies/acme/reviews").json()["total"] == 0

    client.post(f"/admin/reviews/{pending.id}/approve", headers=headers_for(admin))

    assert client.get("/companies/acme").json()["reviewCount"] == 1
    assert client.get("/companies/acme/reviews").json()["total"] == 1


def test_admin_routes_need_admin(client, db):
    r = client.get("/admin/reviews")
    assert (r.status_code, r.json()["errorCode"]) == (401, "UNAUTHORIZED")
    r = client.get("/admin/reviews", headers=headers_for(make_user(db)))
    assert (r.status_code, r.json()["errorCode"]) == (403, "FORBIDDEN")
    r = client.get("/admin/reviews", headers=headers_for(make_user(db, role=UserRole.super_admin)))
    assert r.status_code == 200


def test_double_approve_conflicts(client, db):
    pending = make_review(db, user=make_user(db), company=make_company(db), status=ReviewStatus.pending)
    admin = headers_for(make_user(db, role=UserRole.admin))

    assert client.post(f"/admin/reviews/{pending.id}/approve", headers=admin).status_code == 200
    r = client.post(f"/admin/reviews/{pending.id}/reject", headers=admin)
    assert r.status_code == 409
    assert r.json()["errorCode"] == "CONFLICT"
    assert r.json()["currentStatus"] == "approved"


def test_author_and_admin_delete(client, db):
    company = make_company(db, slug="acme")
    author = make_user(db)
    mine = make_review(db, user=author, company=company)
    theirs = make_review(db, user=make_user(db), company=company)

    r = client.delete(f"/reviews/{theirs.id}", headers=headers_for(author))
    assert (r.status_code, r.json()["errorCode"]) == (403, "CAN_ONLY_DELETE_OWN_REVIEWS")

    r = client.delete(f"/reviews/{mine.id}", headers=headers_for(author))
    assert r.json() == {"success": True, "companySlug": "acme"}

    admin = make_user(db, role=UserRole.admin)
    assert client.delete(f"/admin/reviews/{theirs.id}", headers=headers_for(admin)).status_code == 200
    assert client.get("/reviews/me", headers=headers_for(author)).json()["total"] == 0


def test_company_listing_and_proposal_flow(client, db):
    category = make_category(db, slug="cafes")
    make_company(db, slug="first", category=category)
    user = make_user(db)
    admin = headers_for(make_user(db, role=UserRole.admin))

    listing = client.get("/companies", params={"category": "cafes"}).json()
    assert listing["total"] == 1

    r = client.post(
        "/companies/propose",
        json={"name": "Second Cup", "categoryId": category.id, "city": "Lviv"},
        headers=headers_for(user),
    )
    assert r.status_code == 201, r.text
    proposal = r.json()
    assert (proposal["slug"], proposal["status"]) == ("second-cup", "pending")

    pending = client.get("/admin/companies/proposals", headers=admin).json()
    assert [p["id"] for p in pending["items"]] == [proposal["id"]]

    r = client.post(
        f"/admin/companies/proposals/{proposal['id']}/approve",
        json={"description": "Specialty coffee"},
        headers=admin,
    )
    assert r.status_code == 200, r.text
    assert r.json()["company"]["slug"] == "second-cup"
    assert r.json()["company"]["category"] == {"slug": "cafes"}

    listing = client.get("/companies", params={"category": "cafes"}).json()
    assert listing["total"] == 2
    assert client.get("/companies/second-cup").json()["description"] == "Specialty coffee"

    r = client.post(f"/admin/companies/proposals/{proposal['id']}/reject", headers=admin)
    assert r.status_code == 409


def test_categories_and_missing_company(client, db):
    make_category(db, slug="cafes")
    assert [c["slug"] for c in client.get("/categories").json()["items"]] == ["cafes"]

    r = client.get("/companies/nope")
    assert r.status_code == 404
    assert r.json() == {"errorCode": "NOT_FOUND", "message": "Company not found"}
