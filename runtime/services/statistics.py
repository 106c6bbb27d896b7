from collections import Counter
from typing import Sequence

from ..models.change_models import ChangeEventRecord, DeliveryStatus, LogStatistics


def aggregate(records: Sequence[ChangeEventRecord]) -> LogStatistics:
    """Summarize a set of kept records.

    oldest/newest are the min/max timestamps, independent of the order the
    records are given in.
    """
    if not records:
        return LogStatistics()

    by_status = Counter(record.delivery_status for record in records)
    timestamps = [record.timestamp for record in records]

    return LogStatistics(
        total_changes=len(records),
        sent_count=by_status[DeliveryStatus.SENT],
        failed_count=by_status[DeliveryStatus.FAILED],
        pending_count=by_status[DeliveryStatus.PENDING],
        distinct_resource_count=len({record.resource_url for record in records}),
        oldest_timestamp=min(timestamps),
        newest_timestamp=max(timestamps),
    )
