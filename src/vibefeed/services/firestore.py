from __future__ import annotations

import json
import time
from collections import OrderedDict
from itertools import takewhile
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

import requests
from loguru import logger

from vibefeed.config import Configuration
from vibefeed.errors import FetchUnavailable


class FirestoreError(FetchUnavailable):
    pass


@dataclass
class _RetryPolicy:
    retries: int = 2
    base_delay: float = 0.5


Filter = Tuple[str, str, Any]  # field path, "==" or "array-contains", value

_OPS = {"==": "EQUAL", "array-contains": "ARRAY_CONTAINS"}


def encode_value(value: Any) -> Dict[str, Any]:
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        stamp = value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
        return {"timestampValue": stamp}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    raise TypeError(f"cannot encode {type(value).__name__} for Firestore")


def encode_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    return {str(k): encode_value(v) for k, v in data.items()}


def decode_value(value: Dict[str, Any]) -> Any:
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "timestampValue" in value:
        raw = str(value["timestampValue"]).replace("Z", "+00:00")
        # Firestore emits nanoseconds; fromisoformat accepts at most microseconds
        if "." in raw:
            head, _, tail = raw.partition(".")
            digits = "".join(takewhile(str.isdigit, tail))
            zone = tail[len(digits):]
            raw = f"{head}.{digits[:6].ljust(6, '0')}{zone}"
        return datetime.fromisoformat(raw)
    if "arrayValue" in value:
        return [decode_value(v) for v in (value["arrayValue"] or {}).get("values", [])]
    if "mapValue" in value:
        return decode_fields((value["mapValue"] or {}).get("fields", {}))
    if "geoPointValue" in value:
        point = value["geoPointValue"] or {}
        return {"latitude": point.get("latitude", 0.0), "longitude": point.get("longitude", 0.0)}
    if "referenceValue" in value:
        return value["referenceValue"]
    return None


def decode_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {k: decode_value(v) for k, v in (fields or {}).items()}


def _doc_id(name: str) -> str:
    return name.rsplit("/", 1)[-1]


def _nest(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Expand dotted keys ("stats.totalSaved") into nested maps."""
    out: Dict[str, Any] = {}
    for key, value in fields.items():
        parts = key.split(".")
        cursor = out
        for part in parts[:-1]:
            cursor = cursor.setdefault(part, {})
        cursor[parts[-1]] = value
    return out


class FirestoreClient:
    """Minimal Firestore REST client covering the reads and writes the app uses."""

    def __init__(self, cfg: Configuration) -> None:
        cfg.require_firestore()
        self.cfg = cfg
        self.base = (
            f"{cfg.firestore_base_url.rstrip('/')}/projects/{cfg.firestore_project_id}"
            "/databases/(default)/documents"
        )
        self.session = requests.Session()
        self._retry = _RetryPolicy(retries=max(0, cfg.firestore_retries))
        self._cache_ttl = 60  # seconds
        self._cache_max = 64
        self._query_cache: OrderedDict[str, Tuple[float, List[Tuple[str, Dict[str, Any]]]]] = OrderedDict()

    def _cache_get(self, key: str) -> Optional[List[Tuple[str, Dict[str, Any]]]]:
        entry = self._query_cache.get(key)
        if not entry:
            return None
        ts, value = entry
        if time.time() - ts > self._cache_ttl:
            self._query_cache.pop(key, None)
            return None
        self._query_cache.move_to_end(key)
        return value

    def _cache_set(self, key: str, value: List[Tuple[str, Dict[str, Any]]]) -> None:
        if len(self._query_cache) >= self._cache_max:
            self._query_cache.popitem(last=False)
        self._query_cache[key] = (time.time(), value)

    def clear_cache(self) -> None:
        self._query_cache.clear()

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Any] = None,
        body: Optional[dict] = None,
        allow_404: bool = False,
    ) -> Optional[Any]:
        headers = {"Accept": "application/json"}
        query: List[Tuple[str, Any]] = list(params or [])
        if self.cfg.firestore_api_key:
            query.append(("key", self.cfg.firestore_api_key))
        attempt = 0
        while True:
            attempt += 1
            try:
                resp = self.session.request(
                    method,
                    url,
                    headers=headers,
                    params=query,
                    json=body,
                    timeout=self.cfg.firestore_timeout,
                )
            except requests.RequestException as exc:  # network error
                if attempt <= self._retry.retries:
                    time.sleep(self._retry.base_delay * attempt)
                    continue
                raise FirestoreError(f"request error: {exc}")

            if allow_404 and resp.status_code == 404:
                return None

            if resp.status_code in (429, 500, 502, 503, 504):
                if attempt <= self._retry.retries:
                    time.sleep(self._retry.base_delay * attempt)
                    continue
                raise FirestoreError(f"upstream {resp.status_code}: {resp.text[:300]}")

            if not resp.ok:
                raise FirestoreError(f"upstream {resp.status_code}: {resp.text[:300]}")

            try:
                return resp.json()
            except ValueError:
                raise FirestoreError("invalid json response")

    def run_query(
        self,
        collection: str,
        filters: Iterable[Filter] = (),
        *,
        use_cache: bool = True,
    ) -> List[Tuple[str, Dict[str, Any]]]:
        """Run a structured query; returns (document id, decoded fields) pairs in server order."""
        clauses = []
        for field_path, op, value in filters:
            if op not in _OPS:
                raise ValueError(f"unsupported filter op {op!r}")
            clauses.append(
                {
                    "fieldFilter": {
                        "field": {"fieldPath": field_path},
                        "op": _OPS[op],
                        "value": encode_value(value),
                    }
                }
            )
        structured: Dict[str, Any] = {"from": [{"collectionId": collection}]}
        if len(clauses) == 1:
            structured["where"] = clauses[0]
        elif clauses:
            structured["where"] = {"compositeFilter": {"op": "AND", "filters": clauses}}

        key = json.dumps(structured, sort_keys=True)
        if use_cache:
            cached = self._cache_get(key)
            if cached is not None:
                return list(cached)

        payload = self._request("POST", f"{self.base}:runQuery", body={"structuredQuery": structured})
        results: list[Tuple[str, Dict[str, Any]]] = []
        for row in payload or []:
            doc = row.get("document") if isinstance(row, dict) else None
            if not doc:
                continue
            results.append((_doc_id(doc.get("name", "")), decode_fields(doc.get("fields", {}))))
        logger.debug("firestore query {} filters={} -> {} docs", collection, len(clauses), len(results))
        if use_cache:
            self._cache_set(key, list(results))
        return results

    def get_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        payload = self._request("GET", f"{self.base}/{collection}/{doc_id}", allow_404=True)
        if payload is None:
            return None
        return decode_fields(payload.get("fields", {}))

    def create_document(self, collection: str, data: Dict[str, Any]) -> str:
        payload = self._request("POST", f"{self.base}/{collection}", body={"fields": encode_fields(data)})
        name = (payload or {}).get("name")
        if not name:
            raise FirestoreError("create returned no document name")
        return _doc_id(name)

    def set_fields(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        """Overwrite the given field paths, creating the document if needed."""
        params = [("updateMask.fieldPaths", path) for path in fields]
        self._request(
            "PATCH",
            f"{self.base}/{collection}/{doc_id}",
            params=params,
            body={"fields": encode_fields(_nest(fields))},
        )
