"""
Secret hashing and credential reset tokens.

User secrets and the master secret are stored as bcrypt hashes. Reset
tokens are random, handed out once, and stored only as a SHA-256 digest.
"""

import hashlib
import hmac
import secrets

import bcrypt

from smartspend.validation.validator import validate_secret


class SecretHasher:
    """Hashes and verifies secrets with bcrypt.

    Parameters
    ----------
    rounds
        The bcrypt work factor (log2 of iterations). Tests use the minimum
        of 4 to stay fast.
    """

    RESET_TOKEN_BYTES = 32

    def __init__(self, rounds: int = 12):
        self._rounds = rounds

    def hash(self, secret: str) -> str:
        """Hash a plaintext secret.

        Raises
        ------
        ValidationError
            If the secret is empty or longer than bcrypt accepts
        """
        validate_secret(secret)
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(secret.encode("utf-8"), salt).decode("utf-8")

    def verify(self, secret: str, secret_hash: str) -> bool:
        """Check a plaintext secret against a stored hash."""
        if not secret or not secret_hash:
            return False
        try:
            return bcrypt.checkpw(secret.encode("utf-8"), secret_hash.encode("utf-8"))
        except (ValueError, TypeError):
            # Invalid hash format, or secret over bcrypt's length limit
            return False

    def new_reset_token(self) -> str:
        return secrets.token_urlsafe(self.RESET_TOKEN_BYTES)

    @staticmethod
    def digest_token(token: str) -> str:
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

    def verify_token(self, token: str, token_digest: str) -> bool:
        if not token or not token_digest:
            return False
        return hmac.compare_digest(self.digest_token(token), token_digest)
