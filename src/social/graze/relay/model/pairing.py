"""In-memory pairing records and their expiring stores.

Device codes are short, human-typed, single-use pairing codes. Sessions are opaque bearer
tokens handed to the desktop client once a code is claimed. Both are kept in plain
dictionaries owned by the web application and are lost on restart.

All timestamps are integer milliseconds since the Unix epoch, which is also what the
endpoints put on the wire.
"""

from dataclasses import dataclass
import secrets
from time import time
from typing import Dict, Iterator, Optional

DEVICE_CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
"""Characters used for device codes. Excludes I, L, O, 0 and 1, which are easy to mistype."""

SESSION_TOKEN_PREFIX = "sess_"


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time() * 1000)


def generate_device_code(length: int = 12) -> str:
    """Generate a device code such as ``K7QH-2MZP-W9RT``.

    The first two groups are four characters each, the last group takes the remainder.
    """
    raw = "".join(secrets.choice(DEVICE_CODE_ALPHABET) for _ in range(length))
    return f"{raw[:4]}-{raw[4:8]}-{raw[8:]}"


def generate_session_token() -> str:
    return SESSION_TOKEN_PREFIX + secrets.token_urlsafe(32)


@dataclass(eq=False)
class DeviceCode:
    """A pending pairing code.

    Attributes:
        code: The human-typed code
        user_id: Discord user id of the account that issued the code
        access_token: Discord access token captured when the code was issued
        expires_at: Expiry in epoch milliseconds
        used: Set once a session has been created from the code
        reserved: Set while a claim is checking the stored token with Discord
    """

    code: str
    user_id: str
    access_token: str
    expires_at: int
    used: bool = False
    reserved: bool = False

    def is_expired(self, now: int) -> bool:
        return self.expires_at < now


@dataclass(eq=False)
class Session:
    """A session issued to a paired device.

    Attributes:
        token: Opaque bearer token given to the device
        user_id: Discord user id the session belongs to
        access_token: Discord access token used for passthrough calls
        expires_at: Expiry in epoch milliseconds
        device_name: Label supplied by the device when it claimed the code
    """

    token: str
    user_id: str
    access_token: str
    expires_at: int
    device_name: str

    def is_live(self, now: int) -> bool:
        return self.expires_at > now


class PairingException(Exception):
    """
    Raised when a device code cannot be claimed.

    The ``error`` attribute holds the error code returned to the client.
    """

    def __init__(self, error: str) -> None:
        super().__init__(error)
        self.error = error

    @staticmethod
    def invalid_code() -> "PairingException":
        """No device code with that value exists."""
        return PairingException("invalid_code")

    @staticmethod
    def already_used() -> "PairingException":
        """The device code has already been claimed."""
        return PairingException("already_used")

    @staticmethod
    def expired() -> "PairingException":
        """The device code is past its expiry."""
        return PairingException("expired")


class DeviceCodeStore:
    """Device codes keyed by code value."""

    def __init__(self, ttl: int) -> None:
        self.ttl = ttl
        self._codes: Dict[str, DeviceCode] = {}

    def __len__(self) -> int:
        return len(self._codes)

    def __iter__(self) -> Iterator[DeviceCode]:
        return iter(list(self._codes.values()))

    def issue(
        self, user_id: str, access_token: str, now: Optional[int] = None
    ) -> DeviceCode:
        if now is None:
            now = now_ms()

        code = generate_device_code()
        while code in self._codes:
            code = generate_device_code()

        device_code = DeviceCode(
            code=code,
            user_id=user_id,
            access_token=access_token,
            expires_at=now + self.ttl * 1000,
        )
        self._codes[code] = device_code
        return device_code

    def get(self, code: str) -> Optional[DeviceCode]:
        return self._codes.get(code)

    def reserve(self, code: str, now: Optional[int] = None) -> DeviceCode:
        """
        Reserve a device code for a claim in progress and return it.

        Checks run in a fixed order: unknown, then already used, then expired. A reserved
        code counts as used, so a second claim racing on the same code fails with
        ``already_used`` while the first one is still talking to Discord. Finish the claim
        with ``consume``, or undo the reservation with ``release``.

        Raises:
            PairingException: If the code is unknown, already used or expired
        """
        if now is None:
            now = now_ms()

        device_code = self._codes.get(code)
        if device_code is None:
            raise PairingException.invalid_code()
        if device_code.used or device_code.reserved:
            raise PairingException.already_used()
        if device_code.is_expired(now):
            raise PairingException.expired()

        device_code.reserved = True
        return device_code

    def consume(self, code: str) -> None:
        """Mark a reserved code as used once its session exists."""
        device_code = self._codes.get(code)
        if device_code is not None:
            device_code.reserved = False
            device_code.used = True

    def release(self, code: str) -> None:
        device_code = self._codes.get(code)
        if device_code is not None:
            device_code.reserved = False

    def sweep(self, now: Optional[int] = None) -> int:
        """
        Drop used codes and codes at or past their expiry. Returns the number removed.

        A reserved code is only dropped once it has expired, so a claim that fails upstream
        can still release it.
        """
        if now is None:
            now = now_ms()

        stale = [
            code
            for code, device_code in self._codes.items()
            if device_code.used or device_code.expires_at <= now
        ]
        for code in stale:
            del self._codes[code]
        return len(stale)


class SessionStore:
    """Sessions keyed by bearer token."""

    def __init__(self, ttl: int, default_device_name: str = "Windows") -> None:
        self.ttl = ttl
        self.default_device_name = default_device_name
        self._sessions: Dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(
        self,
        user_id: str,
        access_token: str,
        device_name: Optional[str] = None,
        now: Optional[int] = None,
    ) -> Session:
        if now is None:
            now = now_ms()

        token = generate_session_token()
        while token in self._sessions:
            token = generate_session_token()

        session = Session(
            token=token,
            user_id=user_id,
            access_token=access_token,
            expires_at=now + self.ttl * 1000,
            device_name=device_name or self.default_device_name,
        )
        self._sessions[token] = session
        return session

    def resolve(self, token: str, now: Optional[int] = None) -> Optional[Session]:
        """Return the session for ``token`` if it exists and has not expired."""
        if now is None:
            now = now_ms()

        session = self._sessions.get(token)
        if session is None or not session.is_live(now):
            return None
        return session

    def sweep(self, now: Optional[int] = None) -> int:
        """Drop sessions at or past their expiry. Returns the number removed."""
        if now is None:
            now = now_ms()

        stale = [
            token for token, session in self._sessions.items() if session.expires_at <= now
        ]
        for token in stale:
            del self._sessions[token]
        return len(stale)
