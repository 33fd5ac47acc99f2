import re

import pytest

from undian.services.identity_service import (
    generate_id,
    hash_password,
    hash_password_bcrypt,
    make_password_digest,
    verify_password,
)


class TestGenerateId:
    def test_ids_are_unique(self):
        ids = {generate_id() for _ in range(2000)}
        assert len(ids) == 2000

    def test_ids_are_lowercase_base36(self):
        for _ in range(50):
            assert re.fullmatch(r"[0-9a-z]{10,}", generate_id())

    def test_time_component_does_not_decrease(self):
        first, second = generate_id(), generate_id()
        # Random suffix is always 9 characters; the rest is the clock
        assert int(second[:-9], 36) >= int(first[:-9], 36)


class TestLegacyDigest:
    @pytest.mark.parametrize("password,expected", [
        ("", "hash_0"),
        ("a", "hash_61"),
        ("ab", "hash_c21"),
    ])
    def test_known_digests(self, password, expected):
        assert hash_password(password) == expected

    def test_digest_is_deterministic(self):
        assert hash_password("admin123") == hash_password("admin123")

    def test_digest_stays_within_32_bits(self):
        digest = hash_password("x" * 500)
        assert re.fullmatch(r"hash_[0-9a-f]+", digest)
        assert int(digest[len("hash_"):], 16) <= 2 ** 31

    @pytest.mark.parametrize("password", ["admin123", "", "pässwörd", "kata sandi 🙂", "P@ssw0rd!"])
    def test_verify_round_trip(self, password):
        assert verify_password(password, hash_password(password)) is True

    @pytest.mark.parametrize("password,changed", [
        ("admin123", "admin124"),
        ("admin123", "Admin123"),
        ("kasir-toko-a", "kasir-toko-b"),
    ])
    def test_changing_one_character_fails(self, password, changed):
        assert verify_password(changed, hash_password(password)) is False

    def test_verify_rejects_non_strings(self):
        assert verify_password(None, hash_password("x")) is False
        assert verify_password("x", None) is False


class TestBcryptScheme:
    def test_bcrypt_digest_verifies(self):
        digest = hash_password_bcrypt("s3cret")
        assert digest.startswith("$2")
        assert verify_password("s3cret", digest) is True
        assert verify_password("s3cres", digest) is False

    def test_make_password_digest_selects_scheme(self):
        assert make_password_digest("pw", "legacy") == hash_password("pw")
        assert make_password_digest("pw", "bcrypt").startswith("$2")

    def test_unknown_scheme_rejected(self):
        with pytest.raises(ValueError):
            make_password_digest("pw", "md5")
