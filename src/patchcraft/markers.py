from __future__ import annotations

from typing import Tuple

BEGIN_MARKER = "*** Begin Patch"
END_MARKER = "*** End Patch"
ADD_FILE_PREFIX = "*** Add File: "
DELETE_FILE_PREFIX = "*** Delete File: "
UPDATE_FILE_PREFIX = "*** Update File: "
MOVE_TO_PREFIX = "*** Move to: "
# Spelling used by older patch producers; still accepted.
MOVE_FILE_TO_PREFIX = "*** Move File to: "
EOF_MARKER = "*** EOF"
SECTION_MARKER = "@@"
SECTION_PREFIX = "@@ "
BARE_STARS = "***"

ADD_PREFIX = "+"
DELETE_PREFIX = "-"
CONTEXT_PREFIX = " "

FILE_HEADERS: Tuple[str, ...] = (
    UPDATE_FILE_PREFIX,
    DELETE_FILE_PREFIX,
    ADD_FILE_PREFIX,
)

# Lines that close the current hunk without being consumed by it.
SECTION_BOUNDARIES: Tuple[str, ...] = (
    SECTION_MARKER,
    END_MARKER,
    *FILE_HEADERS,
    EOF_MARKER,
)
