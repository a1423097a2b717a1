from datetime import timedelta
from uuid import uuid4

from argon2 import PasswordHasher

from pulse_chat_app.users.utils import password
from pulse_chat_app.users.utils.get_current_user import decode_token
from pulse_chat_app.users.utils.token_generate import create_access_token


def test_token_round_trip_carries_user_id():
    user_id = uuid4()
    token = create_access_token({"sub": str(user_id)})
    assert decode_token(token) == user_id


def test_expired_or_foreign_tokens_are_rejected():
    user_id = uuid4()
    expired = create_access_token({"sub": str(user_id)}, expires_delta=timedelta(seconds=-5))
    assert decode_token(expired) is None
    assert decode_token(create_access_token({"username": "no-sub"})) is None
    assert decode_token(create_access_token({"sub": "not-a-uuid"})) is None
    assert decode_token("garbage") is None


def test_password_hash_and_verify():
    hashed = password.hash_password("s3cret")
    assert hashed != "s3cret"
    assert password.verify_password("s3cret", hashed) is True
    assert password.verify_password("wrong", hashed) is False
    assert password.verify_password("s3cret", "plain-text-in-db") is False


def test_rehash_only_for_outdated_parameters():
    current = password.hash_password("s3cret")
    assert password.rehash_if_needed("s3cret", current) is None

    weak = PasswordHasher(time_cost=1, memory_cost=8, parallelism=1).hash("s3cret")
    upgraded = password.rehash_if_needed("s3cret", weak)
    assert upgraded is not None
    assert password.verify_password("s3cret", upgraded) is True
