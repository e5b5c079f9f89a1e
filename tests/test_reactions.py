import threading

import pytest
from hypothesis import HealthCheck, given, settings as hsettings, strategies as st

from dovi.core.errors import CannotReactToOwnReview, NotFoundError, ReviewNotPublished, ValidationFailed
from dovi.db.session import SessionLocal
from dovi.models.enums import ReviewStatus
from dovi.models.reviews import ReviewReaction
from dovi.services.reactions import ledger_counts, react

from tests.factories import make_company, make_review, make_user


@pytest.fixture()
def review(db):
    company = make_company(db, slug="acme")
    return make_review(db, user=make_user(db), company=company)


def _stored_counts(db, review):
    db.refresh(review)
    return review.likes_count, review.dislikes_count


def test_like_toggle_off_and_flip(db, review):
    reader = make_user(db)

    res = react(db, user_id=reader.id, review_id=review.id, value=1)
    assert (res.likes_count, res.dislikes_count, res.user_reaction) == (1, 0, 1)
    assert res.company_slug == "acme"
    assert set(res.tags) == {f"review:{review.id}", "company:acme:reviews"}

    res = react(db, user_id=reader.id, review_id=review.id, value=-1)
    assert (res.likes_count, res.dislikes_count, res.user_reaction) == (0, 1, -1)
    rows = db.query(ReviewReaction).filter_by(review_id=review.id).all()
    assert [(r.user_id, r.value) for r in rows] == [(reader.id, -1)]

    res = react(db, user_id=reader.id, review_id=review.id, value=-1)
    assert (res.likes_count, res.dislikes_count, res.user_reaction) == (0, 0, None)
    assert db.query(ReviewReaction).filter_by(review_id=review.id).count() == 0


def test_same_value_twice_returns_to_baseline(db, review):
    others = [make_user(db) for _ in range(2)]
    for u in others:
        react(db, user_id=u.id, review_id=review.id, value=1)
    baseline = _stored_counts(db, review)

    reader = make_user(db)
    react(db, user_id=reader.id, review_id=review.id, value=1)
    react(db, user_id=reader.id, review_id=review.id, value=1)

    assert _stored_counts(db, review) == baseline == (2, 0)


def test_counts_from_many_users(db, review):
    users = [make_user(db) for _ in range(5)]
    for i, u in enumerate(users):
        react(db, user_id=u.id, review_id=review.id, value=1 if i % 2 == 0 else -1)

    assert _stored_counts(db, review) == (3, 2)
    assert ledger_counts(db, review_id=review.id) == (3, 2)


def test_cannot_react_to_own_review(db, review):
    with pytest.raises(CannotReactToOwnReview):
        react(db, user_id=review.user_id, review_id=review.id, value=1)


def test_pending_review_rejects_reactions(db):
    pending = make_review(db, user=make_user(db), company=make_company(db), status=ReviewStatus.pending)
    with pytest.raises(ReviewNotPublished):
        react(db, user_id=make_user(db).id, review_id=pending.id, value=1)


def test_rejected_review_still_accepts_reactions(db):
    rejected = make_review(db, user=make_user(db), company=make_company(db), status=ReviewStatus.rejected)
    res = react(db, user_id=make_user(db).id, review_id=rejected.id, value=-1)
    assert res.dislikes_count == 1


@pytest.mark.parametrize("value", [0, 2, "1", None, True, 1.0])
def test_invalid_values(db, review, value):
    with pytest.raises(ValidationFailed) as exc:
        react(db, user_id=make_user(db).id, review_id=review.id, value=value)
    assert exc.value.error_code == "VALUE_INVALID"


def test_unknown_review(db):
    with pytest.raises(NotFoundError):
        react(db, user_id=make_user(db).id, review_id="missing", value=1)


@given(moves=st.lists(st.tuples(st.integers(min_value=0, max_value=2), st.sampled_from([1, -1])), max_size=25))
@hsettings(max_examples=25, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
def test_counters_always_match_ledger(db, moves):
    company = make_company(db)
    review = make_review(db, user=make_user(db), company=company)
    readers = [make_user(db) for _ in range(3)]
    expected: dict[str, int] = {}

    for idx, value in moves:
        uid = readers[idx].id
        res = react(db, user_id=uid, review_id=review.id, value=value)
        if expected.get(uid) == value:
            expected.pop(uid)
        else:
            expected[uid] = value
        assert res.user_reaction == expected.get(uid)

    likes = sum(1 for v in expected.values() if v == 1)
    dislikes = sum(1 for v in expected.values() if v == -1)
    assert _stored_counts(db, review) == (likes, dislikes)
    assert ledger_counts(db, review_id=review.id) == (likes, dislikes)


def test_concurrent_reactions_from_distinct_users(db, review):
    readers = [make_user(db) for _ in range(12)]
    values = [1 if i % 3 else -1 for i in range(len(readers))]
    start = threading.Barrier(len(readers))
    errors = []

    def worker(user_id, value):
        session = SessionLocal()
        try:
            start.wait(timeout=10)
            react(session, user_id=user_id, review_id=review.id, value=value)
        except Exception as e:
            errors.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=worker, args=(u.id, v)) for u, v in zip(readers, values)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert errors == []
    expected = (values.count(1), values.count(-1))
    assert _stored_counts(db, review) == expected
    assert ledger_counts(db, review_id=review.id) == expected
