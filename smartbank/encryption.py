"""
Credential Encryption at Rest Module

Provides field-level encryption for passwords and PINs. Encryption happens
only when a record is written to its data file and decryption only when it
is read back, so the rest of the system always sees plaintext.

The default provider is a character shift cipher that keeps existing data
files readable. It is obfuscation, not cryptography. A Fernet provider is
available for new data directories; switching providers on an existing
directory requires re-encrypting every stored secret first.
"""

import base64
import logging
from abc import ABC, abstractmethod
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

logger = logging.getLogger("smartbank.encryption")

DEFAULT_SHIFT = 2

# Encryption marker prefix
ENCRYPTION_PREFIX = "ENC:"

# Characters in this range wrap around like a single byte does
_BYTE_RANGE = 256


class EncryptionProvider(ABC):
    """Abstract base class for encryption providers"""

    @abstractmethod
    def encrypt(self, plaintext: str) -> str:
        """Encrypt plaintext and return ciphertext"""
        pass

    @abstractmethod
    def decrypt(self, ciphertext: str) -> str:
        """Decrypt ciphertext and return plaintext"""
        pass


class CaesarEncryptionProvider(EncryptionProvider):
    """Shifts every character by a fixed key, compatible with legacy data files"""

    def __init__(self, shift: int = DEFAULT_SHIFT):
        self.shift = shift

    def encrypt(self, plaintext: str) -> str:
        if not isinstance(plaintext, str):
            plaintext = str(plaintext)
        return _shift_text(plaintext, self.shift)

    def decrypt(self, ciphertext: str) -> str:
        if not isinstance(ciphertext, str):
            ciphertext = str(ciphertext)
        return _shift_text(ciphertext, -self.shift)


class FernetEncryptionProvider(EncryptionProvider):
    """Fernet encryption provider using cryptography library (AES-128-CBC + HMAC-SHA256)"""

    def __init__(self, master_key: str, salt: Optional[bytes] = None):
        if not master_key:
            raise ValueError("Fernet encryption requires a master key")

        self.master_key = master_key.encode('utf-8')
        self.salt = salt or b'smartbank_credentials_salt'

        # Derive Fernet key from master key using PBKDF2
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=self.salt,
            iterations=100000,
        )
        fernet_key = base64.urlsafe_b64encode(kdf.derive(self.master_key))

        self.fernet = Fernet(fernet_key)
        logger.info("FernetEncryptionProvider initialized")

    def encrypt(self, plaintext: str) -> str:
        if not isinstance(plaintext, str):
            plaintext = str(plaintext)

        token = self.fernet.encrypt(plaintext.encode('utf-8')).decode('ascii')
        return f"{ENCRYPTION_PREFIX}{token}"

    def decrypt(self, ciphertext: str) -> str:
        if not isinstance(ciphertext, str):
            ciphertext = str(ciphertext)

        if ciphertext.startswith(ENCRYPTION_PREFIX):
            ciphertext = ciphertext[len(ENCRYPTION_PREFIX):]

        try:
            return self.fernet.decrypt(ciphertext.encode('ascii')).decode('utf-8')
        except (InvalidToken, UnicodeError) as e:
            logger.error(f"Failed to decrypt stored secret: {type(e).__name__}")
            raise ValueError("Failed to decrypt stored secret") from e


def _shift_text(text: str, shift: int) -> str:
    shifted = []
    for ch in text:
        code = ord(ch)
        if code < _BYTE_RANGE:
            shifted.append(chr((code + shift) % _BYTE_RANGE))
        else:
            shifted.append(chr(code + shift))
    return "".join(shifted)


def encrypt_text(text: str, shift: int = DEFAULT_SHIFT) -> str:
    """Shift-encrypt text with the given key"""
    return CaesarEncryptionProvider(shift).encrypt(text)


def decrypt_text(text: str, shift: int = DEFAULT_SHIFT) -> str:
    """Reverse encrypt_text() for the same key"""
    return CaesarEncryptionProvider(shift).decrypt(text)


def create_encryption_provider(provider_type: str = "caesar", shift: int = DEFAULT_SHIFT,
                               master_key: str = "") -> EncryptionProvider:
    """Factory function to create encryption providers"""
    provider_type = provider_type.lower()

    if provider_type == "caesar":
        return CaesarEncryptionProvider(shift)

    if provider_type == "fernet":
        return FernetEncryptionProvider(master_key)

    raise ValueError(f"Unknown encryption provider '{provider_type}'")
