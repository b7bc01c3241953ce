"""AES-256-GCM encryption for stored GitHub access tokens."""
import base64
import os

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from repochat.config import settings

_PREFIX = "enc:"


class TokenEncryptor:
    def __init__(self, key_hex: str):
        self.aesgcm = AESGCM(bytes.fromhex(key_hex))

    def encrypt(self, plaintext: str) -> str:
        nonce = os.urandom(12)
        ciphertext = self.aesgcm.encrypt(nonce, plaintext.encode(), None)
        return _PREFIX + base64.b64encode(nonce + ciphertext).decode()

    def decrypt(self, token: str) -> str:
        data = base64.b64decode(token.removeprefix(_PREFIX))
        nonce, ciphertext = data[:12], data[12:]
        return self.aesgcm.decrypt(nonce, ciphertext, None).decode()


def _encryptor() -> TokenEncryptor | None:
    if not settings.ENCRYPTION_KEY:
        return None
    return TokenEncryptor(settings.ENCRYPTION_KEY)


def seal_token(plaintext: str) -> str:
    """Encrypt a token for storage; stored as-is when no key is configured."""
    encryptor = _encryptor()
    return encryptor.encrypt(plaintext) if encryptor else plaintext


def open_token(stored: str) -> str:
    """Reverse of seal_token. Plain values written without a key pass through."""
    encryptor = _encryptor()
    if encryptor is None or not stored.startswith(_PREFIX):
        return stored
    return encryptor.decrypt(stored)
