"""Selection of log files that still need grading.

Both helpers rely on the listing being ordered newest first: once a
processed file is met, everything older is processed as well.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional, Sequence

MembershipCheck = Callable[[str], bool]

logger = logging.getLogger(__name__)


def find_unprocessed_prefix(candidates: Iterable[str], is_processed: MembershipCheck) -> List[str]:
    """Return the newest-first run of candidates not yet in the store.

    Scanning stops at the first processed candidate; older candidates are
    neither queried nor pulled from ``candidates``. Store errors propagate.
    """
    pending: List[str] = []
    for name in candidates:
        if is_processed(name):
            logger.debug("Reached already processed file %s", name, extra={"file_name": name})
            break
        pending.append(name)
    return pending


def find_oldest_unprocessed(prefix: Sequence[str], is_processed: MembershipCheck) -> Optional[str]:
    """Return the oldest name in ``prefix`` that is still unprocessed.

    Membership is queried again because another worker may have finished a
    file since the prefix was built. Two workers can still pick the same file.
    """
    for name in reversed(prefix):
        if not is_processed(name):
            return name
        logger.info(
            "File was processed by another worker since discovery",
            extra={"file_name": name},
        )
    return None
