# identity_api/adapters/outbound/security/secret_manager.py

import secrets
from passlib.context import CryptContext

SECRET_BYTES = 32


class ClientSecretManager:
    """
    Generation and hashing of client secrets.

    Plaintext secrets leave this class only once, towards the caller that
    created or regenerated the client; the database stores the hash.
    """

    crypt_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

    @classmethod
    def generate_secret(cls) -> str:
        """
        URL-safe random secret, always 43 characters long.
        """
        return secrets.token_urlsafe(SECRET_BYTES)

    @classmethod
    async def hash_secret(cls, secret: str) -> str:
        """
        Generate secure secret hash for storage in the database.
        """
        return cls.crypt_context.hash(secret)

    @classmethod
    async def verify_secret(cls, plain_secret: str, hashed_secret: str) -> bool:
        """
        Compare plain text secret with stored hash.
        """
        return cls.crypt_context.verify(plain_secret, hashed_secret)
