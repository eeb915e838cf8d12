from modules.auth.interfaces import ISessionTokenService, IPasswordHasher
from modules.auth.passwords import BcryptPasswordHasher
from modules.auth.service import SessionTokenService


class TestAuthInterfaces:
    def test_session_service_implements_interface(self):
        assert isinstance(SessionTokenService(secret="s"), ISessionTokenService)

    def test_password_hasher_implements_interface(self):
        assert isinstance(BcryptPasswordHasher(rounds=4), IPasswordHasher)

    def test_interface_methods_exist(self):
        for method in ["issue_token", "validate_token"]:
            assert hasattr(ISessionTokenService, method)
        for method in ["hash", "verify"]:
            assert hasattr(IPasswordHasher, method)
