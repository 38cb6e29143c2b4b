"""An offchain worker that submits numbers on chain, signs payloads and fetches remote JSON.

On-chain, the pallet keeps the most recent submitted numbers and writes a record
of each submission into offchain storage (offchain indexing). Offchain, the
worker picks one of four jobs by block number: send a signed transaction, send
an unsigned transaction, send an unsigned transaction carrying a signed payload,
or fetch and cache a JSON document over HTTP.
"""

from __future__ import annotations

import json
import logging
import struct
import time
import urllib.error
import urllib.request
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from nacl.exceptions import CryptoError
from nacl.signing import SigningKey, VerifyKey

from runtimekit.runtime import DispatchError, Origin, System, ensure_none, ensure_signed

logger = logging.getLogger(__name__)

NUM_VEC_LEN = 10
UNSIGNED_TXS_PRIORITY = 100
HTTP_REMOTE_REQUEST = "https://api.example.com/orgs/example"
HTTP_HEADER_USER_AGENT = "runtimekit-ocw"
FETCH_TIMEOUT_PERIOD = 3000
LOCK_TIMEOUT_EXPIRATION = FETCH_TIMEOUT_PERIOD + 1000
LOCK_BLOCK_EXPIRATION = 3
ONCHAIN_TX_KEY = b"ocw-demo::storage::tx"
GH_INFO_KEY = b"ocw-demo::gh-info"
LOCK_KEY = b"ocw-demo::lock"
TAG_PREFIX = "ocw-demo"
LOCAL_SOURCE = "local"

_TRANSACTION_TYPES = 4
_U32_MAX = 2**32 - 1
_U64_MAX = 2**64 - 1
_LOCK_LAYOUT = struct.Struct("<QQ")


class OffchainError(DispatchError):
    """Base class for errors raised by the offchain worker."""


class UnknownOffchainMux(OffchainError):
    """Not sure which offchain job to run."""


class NoLocalAcctForSigning(OffchainError):
    """No local key is available to sign with."""


class OffchainSignedTxError(OffchainError):
    """Sending a signed transaction failed."""


class OffchainUnsignedTxError(OffchainError):
    """Sending an unsigned transaction failed."""


class OffchainUnsignedTxSignedPayloadError(OffchainError):
    """Sending an unsigned transaction with a signed payload failed."""


class HttpFetchingError(OffchainError):
    """Fetching or parsing the remote document failed."""


class InvalidTransaction(DispatchError):
    """An unsigned transaction was rejected; ``reason`` says why."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


@dataclass(frozen=True)
class NewNumber:
    """A number was accepted; ``account`` is None for unsigned submissions."""

    account: Optional[Any]
    number: int


def _check_u64(value: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= _U64_MAX:
        raise ValueError(f"{value!r} is not a valid u64")
    return value


def _encode_compact(value: int) -> bytes:
    if value < 0:
        raise ValueError("compact integers cannot be negative")
    if value < 1 << 6:
        return bytes([value << 2])
    if value < 1 << 14:
        return ((value << 2) | 1).to_bytes(2, "little")
    if value < 1 << 30:
        return ((value << 2) | 2).to_bytes(4, "little")
    raw = value.to_bytes((value.bit_length() + 7) // 8, "little")
    return bytes([((len(raw) - 4) << 2) | 3]) + raw


def _take(data: bytes, offset: int, size: int) -> tuple[bytes, int]:
    end = offset + size
    if end > len(data):
        raise ValueError("input is truncated")
    return data[offset:end], end


def _decode_compact(data: bytes, offset: int) -> tuple[int, int]:
    head, _ = _take(data, offset, 1)
    mode = head[0] & 3
    if mode == 0:
        return head[0] >> 2, offset + 1
    if mode in (1, 2):
        chunk, end = _take(data, offset, 2 if mode == 1 else 4)
        return int.from_bytes(chunk, "little") >> 2, end
    chunk, end = _take(data, offset + 1, (head[0] >> 2) + 4)
    return int.from_bytes(chunk, "little"), end


def _encode_bytes(value: bytes) -> bytes:
    return _encode_compact(len(value)) + value


def _decode_bytes(data: bytes, offset: int) -> tuple[bytes, int]:
    length, offset = _decode_compact(data, offset)
    return _take(data, offset, length)


@dataclass(frozen=True)
class GithubInfo:
    """The fields kept from the fetched organisation document."""

    login: bytes
    blog: bytes
    public_repos: int

    @classmethod
    def from_json(cls, text: str) -> GithubInfo:
        """Parse a JSON object; unknown fields are ignored, missing ones raise ValueError."""
        try:
            obj = json.loads(text)
        except json.JSONDecodeError as err:
            raise ValueError(f"invalid JSON: {err}") from err
        if not isinstance(obj, dict):
            raise ValueError("expected a JSON object")
        login, blog, repos = obj.get("login"), obj.get("blog"), obj.get("public_repos")
        if not isinstance(login, str) or not isinstance(blog, str):
            raise ValueError("login and blog must be strings")
        if not isinstance(repos, int) or isinstance(repos, bool) or not 0 <= repos <= _U32_MAX:
            raise ValueError("public_repos must be a u32")
        return cls(login.encode("utf-8"), blog.encode("utf-8"), repos)

    def __str__(self) -> str:
        return (
            f"{{ login: {self.login.decode('utf-8')}, "
            f"blog: {self.blog.decode('utf-8')}, public_repos: {self.public_repos} }}"
        )


def _encode_info(info: GithubInfo) -> bytes:
    return _encode_bytes(info.login) + _encode_bytes(info.blog) + struct.pack("<I", info.public_repos)


def _decode_info(data: bytes) -> GithubInfo:
    login, offset = _decode_bytes(data, 0)
    blog, offset = _decode_bytes(data, offset)
    repos, offset = _take(data, offset, 4)
    if offset != len(data):
        raise ValueError("trailing bytes after GithubInfo")
    return GithubInfo(login, blog, struct.unpack("<I", repos)[0])


@dataclass(frozen=True)
class IndexingData:
    """What a submission writes to offchain storage: the call's name and the number."""

    label: bytes
    number: int

    def encode(self) -> bytes:
        return _encode_bytes(bytes(self.label)) + struct.pack("<Q", _check_u64(self.number))

    @classmethod
    def decode(cls, data: bytes) -> IndexingData:
        data = bytes(data)
        label, offset = _decode_bytes(data, 0)
        raw, offset = _take(data, offset, 8)
        if offset != len(data):
            raise ValueError("trailing bytes after IndexingData")
        return cls(label, struct.unpack("<Q", raw)[0])


@dataclass(frozen=True)
class Payload:
    """A number together with the public key of the account that signs it."""

    number: int
    public: bytes

    def encode(self) -> bytes:
        return struct.pack("<Q", _check_u64(self.number)) + bytes(self.public)


class AuthorityKey:
    """A local signing key used by the offchain worker."""

    def __init__(self, signing_key: SigningKey) -> None:
        self._signing_key = signing_key

    @classmethod
    def generate(cls) -> AuthorityKey:
        return cls(SigningKey.generate())

    @property
    def public(self) -> bytes:
        return bytes(self._signing_key.verify_key)

    def sign(self, message: bytes) -> bytes:
        """Return the detached signature of a message."""
        return self._signing_key.sign(bytes(message)).signature


def verify_payload(payload: Payload, signature: bytes) -> bool:
    """Whether the signature over the encoded payload matches the payload's public key."""
    try:
        VerifyKey(bytes(payload.public)).verify(payload.encode(), bytes(signature))
    except (CryptoError, ValueError, TypeError):
        return False
    return True


@dataclass(frozen=True)
class ValidTransaction:
    """How the pool should treat an accepted unsigned transaction."""

    provides: tuple
    priority: int = UNSIGNED_TXS_PRIORITY
    requires: tuple = ()
    longevity: int = 3
    propagate: bool = True
    tag_prefix: str = TAG_PREFIX


class OffchainStorage:
    """Persistent key-value storage local to the node, with expiring locks."""

    def __init__(self) -> None:
        self._values: dict[bytes, bytes] = {}

    def get(self, key: bytes) -> Optional[bytes]:
        return self._values.get(bytes(key))

    def set(self, key: bytes, value: bytes) -> None:
        self._values[bytes(key)] = bytes(value)

    def try_lock(self, key: bytes, block_number: int, now_ms: int) -> bool:
        """Take the lock unless it is held; a held lock expires once both its
        block and its time deadline have passed."""
        existing = self.get(key)
        if existing is not None:
            block_deadline, time_deadline = _LOCK_LAYOUT.unpack(existing)
            if not (block_number > block_deadline and now_ms > time_deadline):
                return False
        self.set(
            key,
            _LOCK_LAYOUT.pack(
                block_number + LOCK_BLOCK_EXPIRATION, int(now_ms) + LOCK_TIMEOUT_EXPIRATION
            ),
        )
        return True

    def release(self, key: bytes) -> None:
        self._values.pop(bytes(key), None)


Fetcher = Callable[[str, dict, int], tuple]


def _http_get(url: str, headers: dict, timeout_ms: int) -> tuple[int, bytes]:
    request = urllib.request.Request(url, headers=headers, method="GET")
    try:
        with urllib.request.urlopen(request, timeout=timeout_ms / 1000) as response:
            return response.status, response.read()
    except urllib.error.HTTPError as err:
        return err.code, err.read()


def _now_ms() -> int:
    return int(time.time() * 1000)


class OcwDemo:
    """The pallet and its offchain worker.

    Transactions sent by the worker go to ``submit(signer, call)``, where
    ``signer`` is the signing public key or None, and ``call`` is a tuple of the
    call name and its arguments. By default they are appended to
    ``transaction_pool``, unsigned ones after passing ``validate_unsigned``.
    """

    def __init__(
        self,
        system: System,
        keys: Iterable[AuthorityKey] = (),
        offchain: Optional[OffchainStorage] = None,
        fetcher: Optional[Fetcher] = None,
        clock: Optional[Callable[[], int]] = None,
        submit: Optional[Callable[[Optional[bytes], tuple], None]] = None,
        url: str = HTTP_REMOTE_REQUEST,
    ) -> None:
        self.system = system
        self.keys = list(keys)
        self.offchain = offchain if offchain is not None else OffchainStorage()
        self.url = url
        self.transaction_pool: list[tuple[Optional[bytes], tuple]] = []
        self._fetcher = fetcher or _http_get
        self._clock = clock or _now_ms
        self._submit = submit or self._pool_submit
        self._numbers: deque[int] = deque(maxlen=NUM_VEC_LEN)

    # On-chain calls

    def _append_or_replace_number(self, number: int) -> None:
        self._numbers.append(number)
        logger.info("Number vector: %s", list(self._numbers))

    def _index(self, label: bytes, number: int) -> None:
        key = self.derived_key(self.system.block_number())
        self.offchain.set(key, IndexingData(label, number).encode())

    def submit_number_signed(self, origin: Origin, number: int) -> None:
        who = ensure_signed(origin)
        _check_u64(number)
        logger.info("submit_number_signed: (%d, %r)", number, who)
        self._append_or_replace_number(number)
        self._index(b"submit_number_signed", number)
        self.system.deposit_event(NewNumber(who, number))

    def submit_number_unsigned(self, origin: Origin, number: int) -> None:
        ensure_none(origin)
        _check_u64(number)
        logger.info("submit_number_unsigned: %d", number)
        self._append_or_replace_number(number)
        self._index(b"submit_number_unsigned", number)
        self.system.deposit_event(NewNumber(None, number))

    def submit_number_unsigned_with_signed_payload(
        self, origin: Origin, payload: Payload, signature: bytes
    ) -> None:
        """Accept a signed payload; its signature is checked by ``validate_unsigned``."""
        ensure_none(origin)
        number = _check_u64(payload.number)
        logger.info(
            "submit_number_unsigned_with_signed_payload: (%d, %s)", number, payload.public.hex()
        )
        self._append_or_replace_number(number)
        self._index(b"submit_number_unsigned_with_signed_payload", number)
        self.system.deposit_event(NewNumber(None, number))

    def validate_unsigned(self, source: str, call: tuple) -> ValidTransaction:
        """Accept the pallet's unsigned calls; raise InvalidTransaction otherwise."""
        name = call[0] if call else None
        if name == "submit_number_unsigned":
            return ValidTransaction(provides=(b"submit_number_unsigned",))
        if name == "submit_number_unsigned_with_signed_payload":
            _, payload, signature = call
            if not verify_payload(payload, signature):
                raise InvalidTransaction("BadProof")
            return ValidTransaction(provides=(b"submit_number_unsigned_with_signed_payload",))
        raise InvalidTransaction("Call")

    def numbers(self) -> list[int]:
        """The most recent numbers, oldest first, at most NUM_VEC_LEN of them."""
        return list(self._numbers)

    def derived_key(self, block_number: int) -> bytes:
        """The offchain storage key under which a block's submission is indexed."""
        return ONCHAIN_TX_KEY + b"/" + struct.pack("<Q", _check_u64(block_number))

    # Offchain worker

    def offchain_worker(self, block_number: int) -> Optional[IndexingData]:
        """Run the job chosen by the block number, then return the data indexed
        at that block, if any. Job errors are logged, not raised."""
        logger.info("Entering off-chain worker")
        jobs = {
            1: self._offchain_signed_tx,
            2: self._offchain_unsigned_tx,
            3: self._offchain_unsigned_tx_signed_payload,
            0: lambda _number: self.fetch_github_info(),
        }
        try:
            job = jobs.get(block_number % _TRANSACTION_TYPES)
            if job is None:
                raise UnknownOffchainMux(block_number)
            job(block_number)
        except OffchainError as err:
            logger.error("offchain_worker error: %r", err)

        raw = self.offchain.get(self.derived_key(block_number))
        if raw is not None:
            try:
                data = IndexingData.decode(raw)
            except ValueError:
                data = None
            if data is not None:
                logger.info(
                    "off-chain indexing data: %s, %d",
                    data.label.decode("utf-8", errors="replace"),
                    data.number,
                )
                return data
        logger.info("no off-chain indexing data retrieved.")
        return None

    def _pool_submit(self, signer: Optional[bytes], call: tuple) -> None:
        if signer is None:
            self.validate_unsigned(LOCAL_SOURCE, call)
        self.transaction_pool.append((signer, call))

    def _signer(self) -> AuthorityKey:
        if not self.keys:
            logger.error("No local account available")
            raise NoLocalAcctForSigning()
        return self.keys[0]

    def _offchain_signed_tx(self, block_number: int) -> None:
        key = self._signer()
        try:
            self._submit(key.public, ("submit_number_signed", block_number))
        except DispatchError as err:
            logger.error("failure: offchain_signed_tx: tx sent: %s", key.public.hex())
            raise OffchainSignedTxError() from err

    def _offchain_unsigned_tx(self, block_number: int) -> None:
        try:
            self._submit(None, ("submit_number_unsigned", block_number))
        except DispatchError as err:
            logger.error("Failed in offchain_unsigned_tx")
            raise OffchainUnsignedTxError() from err

    def _offchain_unsigned_tx_signed_payload(self, block_number: int) -> None:
        key = self._signer()
        payload = Payload(block_number, key.public)
        signature = key.sign(payload.encode())
        try:
            self._submit(
                None, ("submit_number_unsigned_with_signed_payload", payload, signature)
            )
        except DispatchError as err:
            logger.error("Failed in offchain_unsigned_tx_signed_payload")
            raise OffchainUnsignedTxSignedPayloadError() from err

    def fetch_github_info(self) -> Optional[GithubInfo]:
        """Return the cached document, or fetch and cache it under a lock.

        Returns None when another run holds the lock; raises HttpFetchingError
        when fetching or parsing fails.
        """
        cached = self.offchain.get(GH_INFO_KEY)
        if cached is not None:
            try:
                info = _decode_info(cached)
            except ValueError:
                info = None
            if info is not None:
                logger.info("cached gh-info: %s", info)
                return info

        if not self.offchain.try_lock(LOCK_KEY, self.system.block_number(), self._clock()):
            return None
        try:
            info = self._fetch_n_parse()
            self.offchain.set(GH_INFO_KEY, _encode_info(info))
        finally:
            self.offchain.release(LOCK_KEY)
        return info

    def _fetch_n_parse(self) -> GithubInfo:
        body = self._fetch_from_remote()
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError as err:
            raise HttpFetchingError("response is not UTF-8") from err
        logger.info("%s", text)
        try:
            return GithubInfo.from_json(text)
        except ValueError as err:
            raise HttpFetchingError(str(err)) from err

    def _fetch_from_remote(self) -> bytes:
        logger.info("sending request to: %s", self.url)
        deadline = self._clock() + FETCH_TIMEOUT_PERIOD
        headers = {"User-Agent": HTTP_HEADER_USER_AGENT}
        try:
            status, body = self._fetcher(self.url, headers, FETCH_TIMEOUT_PERIOD)
        except (OSError, ValueError) as err:
            raise HttpFetchingError(str(err)) from err
        if self._clock() > deadline:
            raise HttpFetchingError("deadline reached")
        if status != 200:
            logger.error("Unexpected http request status code: %s", status)
            raise HttpFetchingError(f"status {status}")
        return bytes(body)