"""
Unit tests for password hashing, session tokens and the login rate limiter.
"""

from datetime import datetime, timedelta, timezone

from jose import jwt

from goodmap.auth.jwt_manager import JWTManager
from goodmap.auth.password import MAX_PASSWORD_BYTES, PasswordManager
from goodmap.auth.rate_limiter import RateLimiter

passwords = PasswordManager(rounds=4)


def test_hash_is_salted():
    first = passwords.hash_password("secret")
    second = passwords.hash_password("secret")

    assert first != second
    assert passwords.verify_password("secret", first)
    assert passwords.verify_password("secret", second)


def test_verify_rejects_wrong_or_empty():
    hashed = passwords.hash_password("secret")

    assert not passwords.verify_password("Secret", hashed)
    assert not passwords.verify_password("", hashed)
    assert not passwords.verify_password(None, hashed)
    assert not passwords.verify_password("secret", "")
    assert not passwords.verify_password("secret", "not-a-bcrypt-hash")


def test_long_passwords_are_accepted():
    long_password = "가" * 40  # 120 bytes in UTF-8
    hashed = passwords.hash_password(long_password)

    assert passwords.verify_password(long_password, hashed)
    assert len(long_password.encode("utf-8")) > MAX_PASSWORD_BYTES


def test_needs_rehash_when_cost_is_lower():
    weak = PasswordManager(rounds=4).hash_password("secret")

    assert PasswordManager(rounds=5).needs_rehash(weak)
    assert not PasswordManager(rounds=4).needs_rehash(weak)
    assert PasswordManager(rounds=4).needs_rehash("garbage")


def test_access_token_round_trip():
    manager = JWTManager("test-secret", access_token_expire_minutes=5)

    payload = manager.verify_access_token(manager.create_access_token("user-1", is_admin=True))

    assert payload["sub"] == "user-1"
    assert payload["is_admin"] is True
    assert payload["type"] == "access"


def test_access_token_rejects_other_secret_and_garbage():
    token = JWTManager("one-secret").create_access_token("user-1", is_admin=True)

    assert JWTManager("other-secret").verify_access_token(token) is None
    assert JWTManager("one-secret").verify_access_token("not.a.token") is None


def test_access_token_expired():
    manager = JWTManager("test-secret")
    past = datetime.now(timezone.utc) - timedelta(hours=2)
    token = jwt.encode(
        {"sub": "user-1", "is_admin": True, "type": "access", "iat": past, "exp": past + timedelta(minutes=1)},
        "test-secret",
        algorithm="HS256",
    )

    assert manager.verify_access_token(token) is None


def test_access_token_wrong_type():
    token = jwt.encode({"sub": "user-1", "type": "refresh"}, "test-secret", algorithm="HS256")

    assert JWTManager("test-secret").verify_access_token(token) is None


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_rate_limiter_locks_out_after_limit():
    clock = FakeClock()
    limiter = RateLimiter(login_attempts_limit=3, lockout_minutes=1, clock=clock)

    for _ in range(3):
        allowed, _ = limiter.check_login_attempts("a@example.com")
        assert allowed
        limiter.record_login_attempt("a@example.com", False)

    allowed, lockout_until = limiter.check_login_attempts("a@example.com")
    assert not allowed
    assert lockout_until == datetime.fromtimestamp(clock.now + 60)

    # Other accounts are unaffected
    assert limiter.check_login_attempts("b@example.com")[0]


def test_rate_limiter_lockout_expires():
    clock = FakeClock()
    limiter = RateLimiter(login_attempts_limit=1, lockout_minutes=1, clock=clock)
    limiter.record_login_attempt("a@example.com", False)
    assert not limiter.check_login_attempts("a@example.com")[0]

    clock.now += 59
    assert not limiter.check_login_attempts("a@example.com")[0]

    clock.now += 2
    assert limiter.check_login_attempts("a@example.com")[0]


def test_rate_limiter_email_is_case_insensitive():
    limiter = RateLimiter(login_attempts_limit=1, lockout_minutes=1)
    limiter.record_login_attempt("Admin@Example.com", False)

    assert not limiter.check_login_attempts("admin@example.com")[0]


def test_rate_limiter_success_clears_attempts():
    limiter = RateLimiter(login_attempts_limit=2, lockout_minutes=1)
    limiter.record_login_attempt("a@example.com", False)
    limiter.record_login_attempt("a@example.com", True)
    limiter.record_login_attempt("a@example.com", False)

    assert limiter.check_login_attempts("a@example.com")[0]


def test_rate_limiter_window_expires():
    clock = FakeClock()
    limiter = RateLimiter(login_attempts_limit=1, lockout_minutes=1, window_seconds=300, clock=clock)
    limiter.record_login_attempt("a@example.com", False)

    clock.now += 301

    assert limiter.check_login_attempts("a@example.com")[0]


def test_rate_limiter_stats_and_reset():
    limiter = RateLimiter()
    limiter.record_login_attempt("a@example.com", False)
    limiter.record_login_attempt("a@example.com", False)

    assert limiter.get_stats()["failed_attempts"] == 2

    limiter.reset()
    assert limiter.get_stats() == {"tracked_emails": 0, "active_lockouts": 0, "failed_attempts": 0}


def test_rate_limiter_forgets_emails_once_their_window_passes():
    clock = FakeClock()
    limiter = RateLimiter(login_attempts_limit=3, lockout_minutes=1, window_seconds=300, clock=clock)
    for i in range(50):
        limiter.record_login_attempt(f"user{i}@example.com", False)
    assert limiter.get_stats()["tracked_emails"] == 50

    clock.now += 301
    limiter.record_login_attempt("fresh@example.com", False)

    assert limiter.get_stats() == {"tracked_emails": 1, "active_lockouts": 0, "failed_attempts": 1}


def test_rate_limiter_drops_entry_when_check_finds_nothing_left():
    clock = FakeClock()
    limiter = RateLimiter(login_attempts_limit=1, lockout_minutes=1, window_seconds=300, clock=clock)
    limiter.record_login_attempt("a@example.com", False)
    assert not limiter.check_login_attempts("a@example.com")[0]

    clock.now += 61
    assert limiter.check_login_attempts("a@example.com")[0]

    assert limiter.get_stats()["tracked_emails"] == 0


def test_rate_limiter_keeps_active_lockouts_when_pruning():
    clock = FakeClock()
    limiter = RateLimiter(login_attempts_limit=1, lockout_minutes=10, window_seconds=60, clock=clock)
    limiter.record_login_attempt("a@example.com", False)
    assert not limiter.check_login_attempts("a@example.com")[0]

    clock.now += 120
    limiter.record_login_attempt("b@example.com", False)

    assert not limiter.check_login_attempts("a@example.com")[0]
    assert limiter.get_stats()["active_lockouts"] == 1
