"""
Normalize card processor replies.

The processor does not commit to one reply format. We have seen JSON,
`key=value` pairs joined by `;` or `,`, and HTML error pages. Attempts run in
that order of strictness:

1. anything that looks like an HTML document is an error page,
2. a strict JSON object,
3. delimited pairs.

Once a field map exists, the echoed order id must match the order we sent.
A mismatch means we cannot tell whose payment this is; it is reported as a
protocol error and never as a decline.

The `,` fallback breaks down when a value itself contains a comma. Confirm the
processor's real reply shape before relying on comma-delimited replies.
"""
import enum
import json
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from urllib.parse import unquote_plus

import structlog

from .exceptions import Declined, GatewayProtocolError

logger = structlog.get_logger(__name__)

HTML_MARKERS = ("<html", "<!doctype", "<body")
ORDER_ID_FIELDS = ("Postback.OrderID", "PostbackID")
SUCCESS_FIELD = "Success"
APPROVED_VALUES = {"Y", "YES", "TRUE", "1", "APPROVED"}
REASON_FIELDS = ("RespText", "Message", "Error")
QUOTED_RE = re.compile(r'"([^"]*)"')
# Coded response text: "YAPPROVED 123456", "NDECLINED", "UUNABLE"
APPROVED_RESP_RE = re.compile(r"^Y?APPROVED\b")

ERROR_PAGE_MESSAGE = "The payment processor rejected the request"


class OutcomeKind(str, enum.Enum):
    APPROVED = "approved"
    DECLINED = "declined"
    REJECTED = "rejected" # processor returned an error page
    PROTOCOL_ERROR = "protocol_error"


@dataclass
class GatewayOutcome:
    kind: OutcomeKind
    raw_response: str
    processor_order_id: Optional[str] = None
    error_message: Optional[str] = None
    fields: Dict[str, str] = field(default_factory=dict)
    pair_errors: List[str] = field(default_factory=list)

    @property
    def approved(self) -> bool:
        return self.kind is OutcomeKind.APPROVED

    def raise_for_outcome(self) -> None:
        """Raise Declined / GatewayProtocolError for callers that prefer exceptions."""
        if self.kind is OutcomeKind.PROTOCOL_ERROR:
            raise GatewayProtocolError(self.error_message or "Invalid gateway response", self.processor_order_id)
        if self.kind in (OutcomeKind.DECLINED, OutcomeKind.REJECTED):
            raise Declined(self.error_message or "Payment declined", self.processor_order_id)

    def to_record(self) -> dict:
        """JSON-safe audit blob stored on the order."""
        return {
            "kind": self.kind.value,
            "approved": self.approved,
            "processor_order_id": self.processor_order_id,
            "error_message": self.error_message,
            "fields": self.fields,
            "pair_errors": self.pair_errors,
            "raw_response": self.raw_response,
        }


def is_html(body: str) -> bool:
    lowered = body.lower()
    return any(marker in lowered for marker in HTML_MARKERS)


def parse_json_object(body: str) -> Optional[Dict[str, str]]:
    try:
        data = json.loads(body)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    return {str(key): "" if value is None else str(value).strip() for key, value in data.items()}


def parse_delimited_pairs(body: str) -> tuple[Dict[str, str], List[str]]:
    """Split on ';' when present, else ','. Bad pairs are collected, not fatal."""
    delimiter = ";" if ";" in body else ","
    pairs: Dict[str, str] = {}
    errors: List[str] = []
    for segment in body.split(delimiter):
        if not segment.strip():
            continue
        if "=" not in segment:
            errors.append(segment.strip())
            continue
        key, value = segment.split("=", 1)
        key = unquote_plus(key).strip()
        if not key:
            errors.append(segment.strip())
            continue
        pairs[key] = unquote_plus(value).strip()
    return pairs, errors


def _echoed_order_id(fields: Dict[str, str]) -> Optional[str]:
    for name in ORDER_ID_FIELDS:
        if name in fields:
            return fields[name]
    return None


def _approval(fields: Dict[str, str]) -> Optional[bool]:
    """True/False when an indicator is present, None when the reply carries none."""
    if SUCCESS_FIELD in fields:
        return fields[SUCCESS_FIELD].strip().upper() in APPROVED_VALUES
    resp_text = fields.get("RespText", "").strip().upper()
    if resp_text:
        return APPROVED_RESP_RE.match(resp_text) is not None
    return None


def _reason(fields: Dict[str, str]) -> Optional[str]:
    for name in REASON_FIELDS:
        if fields.get(name):
            return fields[name]
    return None


def parse_gateway_response(body: str, order_id: str) -> GatewayOutcome:
    body = body or ""
    log = logger.bind(order_id=order_id)

    if is_html(body):
        match = QUOTED_RE.search(body)
        message = match.group(1).strip() if match and match.group(1).strip() else ERROR_PAGE_MESSAGE
        log.warning("gateway_error_page", error_message=message, raw_response=body)
        return GatewayOutcome(OutcomeKind.REJECTED, raw_response=body, error_message=message)

    fields = parse_json_object(body)
    pair_errors: List[str] = []
    if fields is None:
        fields, pair_errors = parse_delimited_pairs(body)
        if pair_errors:
            log.warning("gateway_malformed_pairs", pair_errors=pair_errors)

    echoed = _echoed_order_id(fields)
    if not fields or echoed is None:
        log.error("gateway_unparseable_response", raw_response=body)
        return GatewayOutcome(
            OutcomeKind.PROTOCOL_ERROR,
            raw_response=body,
            fields=fields,
            pair_errors=pair_errors,
            error_message="Gateway response could not be parsed or carried no order id",
        )

    if echoed != order_id:
        log.error("gateway_order_id_mismatch", processor_order_id=echoed, raw_response=body)
        return GatewayOutcome(
            OutcomeKind.PROTOCOL_ERROR,
            raw_response=body,
            processor_order_id=echoed,
            fields=fields,
            pair_errors=pair_errors,
            error_message=f"Gateway response order id {echoed!r} does not match {order_id!r}",
        )

    approved = _approval(fields)
    if approved is None:
        log.error("gateway_missing_indicator", raw_response=body)
        return GatewayOutcome(
            OutcomeKind.PROTOCOL_ERROR,
            raw_response=body,
            processor_order_id=echoed,
            fields=fields,
            pair_errors=pair_errors,
            error_message="Gateway response carried no approval indicator",
        )

    if approved:
        return GatewayOutcome(OutcomeKind.APPROVED, raw_response=body, processor_order_id=echoed,
                              fields=fields, pair_errors=pair_errors)

    return GatewayOutcome(
        OutcomeKind.DECLINED,
        raw_response=body,
        processor_order_id=echoed,
        fields=fields,
        pair_errors=pair_errors,
        error_message=_reason(fields) or "Payment declined",
    )
