from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class PasslibPasswordHasher:
    def __init__(self, context: CryptContext = pwd_context):
        self._context = context
        self._dummy_hash = None

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        return self._context.verify(password, password_hash)

    def dummy_verify(self, password: str) -> None:
        # Same work as a real check, for logins with an unknown email
        if self._dummy_hash is None:
            self._dummy_hash = self._context.hash("dummy-password")
        self._context.verify(password, self._dummy_hash)


password_hasher = PasslibPasswordHasher()
