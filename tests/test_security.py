from datetime import timedelta

import pytest
from starlette.requests import Request

from shared.security import bearer_token, create_access_token, token_subject, user_id_or_ip, verify_api_key


def _request(headers=None) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "headers": raw, "client": ("10.0.0.5", 4321)})


def test_token_subject_reads_sub():
    assert token_subject(create_access_token({"sub": "user-42"})) == "user-42"


@pytest.mark.parametrize(
    "token",
    [
        None,
        "",
        "not-a-jwt",
        create_access_token({"sub": "user-42"}, expires_delta=timedelta(minutes=-1)),
        create_access_token({"role": "shopper"}),
    ],
)
def test_unusable_tokens_have_no_subject(token):
    assert token_subject(token) is None


def test_bearer_token_requires_the_scheme():
    assert bearer_token("Bearer abc") == "abc"
    assert bearer_token("Basic abc") is None
    assert bearer_token("Bearer ") is None
    assert bearer_token(None) is None


def test_rate_limit_key_prefers_the_shopper():
    token = create_access_token({"sub": "user-42"})
    assert user_id_or_ip(_request({"Authorization": f"Bearer {token}"})) == "user:user-42"
    assert user_id_or_ip(_request({"Authorization": "Bearer junk"})) == "ip:10.0.0.5"
    assert user_id_or_ip(_request()) == "ip:10.0.0.5"


def test_internal_key_comparison():
    assert verify_api_key("test-internal-key")
    assert not verify_api_key("test-internal-keyX")
    assert not verify_api_key(None)
