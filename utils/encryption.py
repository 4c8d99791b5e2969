"""
Encryption of OAuth tokens at rest

Each value is AES-256-CBC encrypted under its own random IV and stored as
``iv_hex:ciphertext_hex`` so every field can be decrypted on its own.
"""
import logging
import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from config.settings import Config
from src.scheduler.errors import ConfigurationError

logger = logging.getLogger(__name__)

IV_LENGTH = 16
BLOCK_SIZE_BITS = 128


class TokenCipher:
    """Symmetric cipher for per-user secrets"""

    def __init__(self, key: str = None):
        key = key if key is not None else Config.ENCRYPTION_KEY
        if not key or len(key.encode("utf-8")) != Config.ENCRYPTION_KEY_LENGTH:
            raise ConfigurationError(
                f"ENCRYPTION_KEY must be exactly {Config.ENCRYPTION_KEY_LENGTH} characters"
            )
        self._key = key.encode("utf-8")

    def encrypt(self, text: str) -> str:
        """Encrypt text; empty input stays empty"""
        if not text:
            return ""

        iv = os.urandom(IV_LENGTH)
        padder = padding.PKCS7(BLOCK_SIZE_BITS).padder()
        padded = padder.update(str(text).encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return f"{iv.hex()}:{ciphertext.hex()}"

    def decrypt(self, value: str) -> str:
        """Decrypt an ``iv:ciphertext`` value; empty or malformed input yields ''"""
        if not value:
            return ""

        try:
            iv_hex, _, ciphertext_hex = value.partition(":")
            iv = bytes.fromhex(iv_hex)
            ciphertext = bytes.fromhex(ciphertext_hex)

            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()

            unpadder = padding.PKCS7(BLOCK_SIZE_BITS).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except (ValueError, TypeError, UnicodeDecodeError) as e:
            logger.warning(f"Could not decrypt stored value: {e}")
            return ""
