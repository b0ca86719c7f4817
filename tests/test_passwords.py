from app.security.passwords import hash_password, validate_password, verify_password


def test_hash_and_verify():
    stored = hash_password("abc12345")
    assert stored != "abc12345"
    assert verify_password("abc12345", stored)
    assert not verify_password("abc12346", stored)


def test_hashes_are_salted():
    assert hash_password("abc12345") != hash_password("abc12345")


def test_verify_rejects_garbage_hash():
    assert verify_password("abc12345", "not-a-hash") is False


def test_policy_accepts_letters_and_digits():
    assert validate_password("abc12345") == []


def test_policy_rejects_short_password():
    errors = validate_password("ab1")
    assert any("at least 8" in e for e in errors)


def test_policy_requires_digit_and_letter():
    assert "Password must contain at least one digit" in validate_password("abcdefgh")
    assert "Password must contain at least one letter" in validate_password("12345678")


def test_policy_rejects_overlong_password():
    errors = validate_password("a1" * 51)
    assert any("must not exceed" in e for e in errors)
