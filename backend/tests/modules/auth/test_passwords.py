from modules.auth.passwords import BcryptPasswordHasher


class TestBcryptPasswordHasher:
    def test_hash_and_verify(self):
        hasher = BcryptPasswordHasher(rounds=4)
        password_hash = hasher.hash("hunter2")

        assert password_hash != "hunter2"
        assert password_hash.startswith("$2")
        assert hasher.verify("hunter2", password_hash) is True
        assert hasher.verify("wrong", password_hash) is False

    def test_hashes_are_salted(self):
        hasher = BcryptPasswordHasher(rounds=4)
        assert hasher.hash("same") != hasher.hash("same")

    def test_verify_malformed_hash(self):
        hasher = BcryptPasswordHasher(rounds=4)
        assert hasher.verify("hunter2", "not-a-bcrypt-hash") is False

    def test_rounds_default_from_settings(self):
        hasher = BcryptPasswordHasher()
        assert hasher.hash("pw").startswith("$2b$10$")
