"""Record zone access over the CloudKit Web Services REST API."""

import logging
import weakref
from collections.abc import Iterator, Sequence
from typing import Protocol

import httpx

from .config import Config
from .records import Query, Record, RecordID, ZoneID

logger = logging.getLogger(__name__)

# records/modify and records/query accept at most 200 operations per request
MAX_OPERATIONS_PER_REQUEST = 200

DELETED_ZONE_CODES = frozenset({"USER_DELETED_ZONE", "ZONE_NOT_FOUND"})

# Per-record errors that count as success for the given operation type
IGNORED_RECORD_ERRORS = {
    "create": frozenset({"EXISTS"}),
    "forceDelete": frozenset({"NOT_FOUND"}),
}


class CloudZoneError(Exception):
    """Raised when the record store rejects a request."""

    def __init__(
        self,
        reason: str,
        server_error_code: str | None = None,
        record_name: str | None = None,
    ):
        super().__init__(reason)
        self.reason = reason
        self.server_error_code = server_error_code
        self.record_name = record_name


class UserDeletedZoneError(CloudZoneError):
    """Raised when the zone was deleted out-of-band by the user."""


class SessionUnavailableError(CloudZoneError):
    """Raised when the session backing a zone has been released."""


def error_from_payload(payload: dict) -> CloudZoneError:
    """Build the matching exception for a serverErrorCode payload."""
    code = payload.get("serverErrorCode", "UNKNOWN_ERROR")
    reason = payload.get("reason") or code
    error_class = UserDeletedZoneError if code in DELETED_ZONE_CODES else CloudZoneError
    return error_class(reason, server_error_code=code, record_name=payload.get("recordName"))


def _chunked(items: Sequence, size: int) -> Iterator[Sequence]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class CloudSession:
    """Async HTTP session for one container's private database.

    Designed for single-instance lifecycle: create once at startup and
    share between zones. Zones only keep a weak reference to it.
    """

    def __init__(self, config: Config):
        self._config = config
        base_url = config.cloudkit_api_url.rstrip("/")
        self.database_url = (
            f"{base_url}/database/1/{config.cloudkit_container}"
            f"/{config.cloudkit_environment}/private"
        )
        self._client = httpx.AsyncClient(
            timeout=config.request_timeout,
            follow_redirects=True,
        )

    def _auth_params(self) -> dict[str, str]:
        return {
            "ckAPIToken": self._config.cloudkit_api_token.get_secret_value(),
            "ckWebAuthToken": self._config.cloudkit_web_auth_token.get_secret_value(),
        }

    async def post(self, operation: str, payload: dict) -> dict:
        """POST a database operation and return the decoded response.

        Raises:
            CloudZoneError: If the response carries a serverErrorCode
            httpx.HTTPStatusError: For HTTP errors without an error payload
        """
        url = f"{self.database_url}/{operation}"
        logger.debug("POST %s", url)

        response = await self._client.post(url, params=self._auth_params(), json=payload)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            error = _error_from_response(e.response)
            if error is None:
                raise
            raise error from e

        data = response.json()
        if "serverErrorCode" in data:
            raise error_from_payload(data)
        return data

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()


def _error_from_response(response: httpx.Response) -> CloudZoneError | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict) and "serverErrorCode" in payload:
        return error_from_payload(payload)
    return None


class ZoneDelegate(Protocol):
    async def cloudkit_did_modify(self, changed: list[Record], deleted: list[RecordID]) -> None:
        """Apply records fetched from the zone."""


class CloudZone:
    """Generic operations on one record zone."""

    def __init__(
        self,
        session: CloudSession,
        zone_id: ZoneID,
        delegate: ZoneDelegate | None = None,
    ):
        self._session_ref = weakref.ref(session)
        self.zone_id = zone_id
        self.delegate = delegate
        self.sync_token: str | None = None

    @property
    def session(self) -> CloudSession:
        session = self._session_ref()
        if session is None:
            raise SessionUnavailableError("Sync session is no longer available")
        return session

    async def fetch_changes_in_zone(self) -> None:
        """Fetch every change since the last sync token and pass it to the delegate."""
        changed: list[Record] = []
        deleted: list[RecordID] = []
        sync_token = self.sync_token

        while True:
            zone_request = {"zoneID": self.zone_id.to_dict()}
            if sync_token:
                zone_request["syncToken"] = sync_token

            data = await self.session.post("changes/zone", {"zones": [zone_request]})
            zone_data = self._zone_result(data)

            for item in zone_data.get("records", []):
                if "serverErrorCode" in item:
                    raise error_from_payload(item)
                if item.get("deleted"):
                    deleted.append(RecordID(item["recordName"], self.zone_id))
                else:
                    changed.append(Record.from_dict(item, self.zone_id))

            sync_token = zone_data.get("syncToken", sync_token)
            if not zone_data.get("moreComing"):
                break

        logger.info(
            "Fetched %d changed and %d deleted records from zone %s",
            len(changed),
            len(deleted),
            self.zone_id.zone_name,
        )
        if self.delegate is not None:
            await self.delegate.cloudkit_did_modify(changed, deleted)
        self.sync_token = sync_token

    async def create_zone_record(self) -> None:
        """Create the zone. A fresh zone starts from an empty sync token."""
        data = await self.session.post(
            "zones/modify",
            {"operations": [{"operationType": "create", "zone": {"zoneID": self.zone_id.to_dict()}}]},
        )
        self._zone_result(data)
        self.sync_token = None
        logger.info("Created zone %s", self.zone_id.zone_name)

    async def save_if_new(self, records: Sequence[Record]) -> None:
        """Create records, leaving any that already exist untouched."""
        operations = [{"operationType": "create", "record": record.to_dict()} for record in records]
        await self._modify_records(operations)

    async def modify(
        self,
        records_to_save: Sequence[Record],
        record_ids_to_delete: Sequence[RecordID],
    ) -> None:
        """Save and delete records in one request chain."""
        operations = [
            {"operationType": "forceUpdate", "record": record.to_dict()}
            for record in records_to_save
        ]
        operations.extend(
            {"operationType": "forceDelete", "record": {"recordName": record_id.record_name}}
            for record_id in record_ids_to_delete
        )
        await self._modify_records(operations)

    async def delete(self, query: Query) -> None:
        """Delete every record matching the query."""
        record_ids: list[RecordID] = []
        continuation_marker = None

        while True:
            payload = {
                "zoneID": self.zone_id.to_dict(),
                "query": query.to_dict(),
                "desiredKeys": [],
                "resultsLimit": MAX_OPERATIONS_PER_REQUEST,
            }
            if continuation_marker:
                payload["continuationMarker"] = continuation_marker

            data = await self.session.post("records/query", payload)
            for item in data.get("records", []):
                if "serverErrorCode" in item:
                    raise error_from_payload(item)
                record_ids.append(RecordID(item["recordName"], self.zone_id))

            continuation_marker = data.get("continuationMarker")
            if not continuation_marker:
                break

        logger.info("Query matched %d %s records for deletion", len(record_ids), query.record_type)
        await self.modify([], record_ids)

    async def _modify_records(self, operations: list[dict]) -> None:
        for batch in _chunked(operations, MAX_OPERATIONS_PER_REQUEST):
            data = await self.session.post(
                "records/modify",
                {"operations": list(batch), "zoneID": self.zone_id.to_dict(), "atomic": False},
            )
            # Results come back in request order
            for operation, result in zip(batch, data.get("records", [])):
                code = result.get("serverErrorCode")
                if code is None or code in IGNORED_RECORD_ERRORS.get(operation["operationType"], ()):
                    continue
                raise error_from_payload(result)
            logger.debug("Submitted %d record operations", len(batch))

    @staticmethod
    def _zone_result(data: dict) -> dict:
        zones = data.get("zones", [])
        if not zones:
            return {}
        zone_data = zones[0]
        if "serverErrorCode" in zone_data:
            raise error_from_payload(zone_data)
        return zone_data
