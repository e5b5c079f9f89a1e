import pytest
import requests

from dovi.client.api import APIError, DoviAPI
from dovi.client.reactions import OptimisticReaction, ReactionState, tentative


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload
        self.text = "" if isinstance(payload, Exception) else str(payload)

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def request(self, **kwargs):
        self.calls.append(kwargs)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def _api(*results, token="tok"):
    session = FakeSession(*results)
    return DoviAPI("http://api.test/", lambda: token, session=session), session


def test_request_sends_token_and_default_timeout():
    api, session = _api(FakeResponse(200, {"items": [], "total": 0}))
    assert api.my_reviews() == {"items": [], "total": 0}
    call = session.calls[0]
    assert call["url"] == "http://api.test/reviews/me"
    assert call["headers"]["Authorization"] == "Bearer tok"
    assert call["timeout"] == 30


def test_error_body_becomes_api_error():
    api, _ = _api(
        FakeResponse(429, {"errorCode": "REGISTER_COOLDOWN", "message": "wait", "remainingMinutes": 12})
    )
    with pytest.raises(APIError) as exc:
        api.create_review("acme", 5, "Title", "Long enough text")
    err = exc.value
    assert (err.status_code, err.error_code, err.message) == (429, "REGISTER_COOLDOWN", "wait")
    assert err.fields == {"remainingMinutes": 12}


def test_non_json_error():
    api, _ = _api(FakeResponse(502, ValueError("no json")))
    with pytest.raises(APIError) as exc:
        api.company("acme")
    assert (exc.value.status_code, exc.value.error_code) == (502, None)


@pytest.mark.parametrize("failure", [requests.Timeout("slow"), requests.ConnectionError("refused")])
def test_transport_failures_map_to_connection_error(failure):
    api, _ = _api(failure)
    with pytest.raises(APIError) as exc:
        api.categories()
    assert (exc.value.status_code, exc.value.error_code) == (0, "CONNECTION_ERROR")


@pytest.mark.parametrize(
    ("state", "value", "expected"),
    [
        (ReactionState(3, 1, None), 1, ReactionState(4, 1, 1)),
        (ReactionState(3, 1, 1), 1, ReactionState(2, 1, None)),
        (ReactionState(3, 1, 1), -1, ReactionState(2, 2, -1)),
        (ReactionState(3, 1, -1), 1, ReactionState(4, 0, 1)),
        (ReactionState(0, 0, -1), -1, ReactionState(0, 0, None)),
    ],
)
def test_tentative_state(state, value, expected):
    assert tentative(state, value) == expected


def test_optimistic_reaction_reconciles_to_server_counts():
    api, _ = _api(FakeResponse(200, {"likesCount": 10, "dislikesCount": 2, "userReaction": 1, "companySlug": "a"}))
    widget = OptimisticReaction(api, "r1", ReactionState(3, 1, None))

    state = widget.toggle(1)

    # Another user reacted meanwhile; the server's counts win over the local guess.
    assert state == ReactionState(10, 2, 1)
    assert widget.in_flight is False


def test_optimistic_reaction_rolls_back_on_failure():
    api, _ = _api(requests.Timeout("slow"))
    before = ReactionState(3, 1, -1)
    widget = OptimisticReaction(api, "r1", before)

    with pytest.raises(APIError):
        widget.toggle(1)
    assert widget.state == before
    assert widget.in_flight is False
