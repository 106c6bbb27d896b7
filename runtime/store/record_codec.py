"""RecordCodec: one ChangeEventRecord <-> one line of the change log.

Encoding is compact JSON with the historical changes.log keys. Values that
contain line breaks (diff previews usually do) are escaped by JSON string
escaping, so an encoded record always fits on a single line.

Decoding never raises: anything that is not a JSON object satisfying the
ChangeEventRecord schema comes back as a MalformedLine carrying the input
verbatim.
"""

import json
import logging

from pydantic import ValidationError

from ..models.change_models import ChangeEventRecord, DecodedLine, MalformedLine


logger = logging.getLogger(__name__)


def encode(record: ChangeEventRecord) -> str:
    """Serialize a record to a single line (without the trailing newline)."""
    line = json.dumps(record.to_wire(), ensure_ascii=False, separators=(",", ":"))
    if "\n" in line or "\r" in line:
        raise ValueError("Encoded change event contains a line break")
    return line


def decode(line: str) -> DecodedLine:
    """Parse one stored line into a record, or a MalformedLine."""
    try:
        data = json.loads(line)
    except ValueError:
        logger.debug("[STORE] Skipping non-JSON log line: %r", line)
        return MalformedLine(raw=line)

    if not isinstance(data, dict):
        logger.debug("[STORE] Skipping non-object log line: %r", line)
        return MalformedLine(raw=line)

    try:
        return ChangeEventRecord.model_validate(data)
    except ValidationError as e:
        logger.debug(
            "[STORE] Skipping log line that violates the record schema: %r (%d errors)",
            line,
            e.error_count(),
        )
        return MalformedLine(raw=line)
