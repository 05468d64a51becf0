"""Machine catalog parsed from the emulator's ``-listxml`` stream.

The stream is a single large XML document, but each ``<machine>`` element is
self-contained. Instead of building one tree for hundreds of megabytes of
XML, the text is cut into machine blocks which are parsed independently on a
thread pool. A block that does not parse is dropped and logged; the rest of
the catalog still loads.
"""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Union

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as ET

from ..exceptions import ParseError

logger = logging.getLogger(__name__)

# Older emulator builds emit <game> instead of <machine>.
_BLOCK_START_RE = re.compile(r"<(machine|game)\s")
_SERIAL_PARSE_LIMIT = 64


class DriverStatus(str, Enum):
    GOOD = "good"
    IMPERFECT = "imperfect"
    PRELIMINARY = "preliminary"


class RomStatus(str, Enum):
    """Playability bucket used by status filters and statistics."""

    GOOD = "good"
    IMPERFECT = "imperfect"
    PRELIMINARY = "preliminary"
    NOT_WORKING = "not_working"


@dataclass(frozen=True)
class MachineRecord:
    """One emulated machine as described by the emulator.

    ``is_runnable`` keeps the raw flag: it is True when the machine declared
    ``runnable="no"``. Use :attr:`can_run` for the positive meaning.
    """

    id: str
    display_name: str = ""
    year: str = ""
    manufacturer: str = ""
    control_type: str = ""
    is_device: bool = False
    is_bios: bool = False
    is_mechanical: bool = False
    is_runnable: bool = False
    parent_id: Optional[str] = None
    driver_status: Optional[DriverStatus] = None
    emulation_status: Optional[str] = None

    @property
    def is_clone(self) -> bool:
        return self.parent_id is not None

    @property
    def can_run(self) -> bool:
        return not self.is_runnable

    @property
    def is_game(self) -> bool:
        return not (self.is_device or self.is_bios)

    @property
    def status(self) -> RomStatus:
        if self.driver_status is not None:
            return RomStatus(self.driver_status.value)
        if not self.can_run:
            return RomStatus.NOT_WORKING
        if self.is_mechanical or self.emulation_status == "imperfect":
            return RomStatus.IMPERFECT
        return RomStatus.GOOD

    @property
    def title(self) -> str:
        return self.display_name or self.id


@dataclass(frozen=True)
class CatalogStats:
    total_games: int
    working_games: int
    parents: int
    clones: int


def split_machine_blocks(raw_text: str) -> List[str]:
    """Cut the stream into one text block per machine element."""
    starts = [m.start() for m in _BLOCK_START_RE.finditer(raw_text)]
    blocks: List[str] = []
    for index, start in enumerate(starts):
        end = starts[index + 1] if index + 1 < len(starts) else len(raw_text)
        blocks.append(raw_text[start:end])
    return blocks


def _isolate_element(block: str) -> str:
    tag = "machine" if block.startswith("<machine") else "game"
    closing = f"</{tag}>"
    end = block.find(closing)
    if end != -1:
        return block[:end + len(closing)]
    head_end = block.find(">")
    if head_end > 0 and block[head_end - 1] == "/":
        return block[:head_end + 1]
    return block


def _text(element, tag: str) -> str:
    child = element.find(tag)
    if child is None or child.text is None:
        return ""
    return child.text.strip()


def _parse_driver_status(value: Optional[str]) -> Optional[DriverStatus]:
    if not value:
        return None
    try:
        return DriverStatus(value.strip().lower())
    except ValueError:
        return None


def parse_machine_block(block: str) -> Optional[MachineRecord]:
    """Parse one machine block; return None when the block is unusable."""
    try:
        element = ET.fromstring(_isolate_element(block))
    except (ET.ParseError, DefusedXmlException) as exc:
        logger.debug("Dropping unparseable machine block: %s", exc)
        return None

    machine_id = (element.get("name") or "").strip()
    if not machine_id:
        logger.debug("Dropping machine block without a name")
        return None

    parent_id = element.get("cloneof") or element.get("romof") or None

    control_type = ""
    for control in element.iter("control"):
        control_type = control.get("type") or ""
        if control_type:
            break

    driver = element.find("driver")
    driver_status = _parse_driver_status(driver.get("status")) if driver is not None else None
    emulation_status = driver.get("emulation") if driver is not None else None

    return MachineRecord(
        id=machine_id,
        display_name=_text(element, "description"),
        year=_text(element, "year"),
        manufacturer=_text(element, "manufacturer"),
        control_type=control_type,
        is_device=element.get("isdevice") == "yes",
        is_bios=element.get("isbios") == "yes",
        is_mechanical=element.get("ismechanical") == "yes",
        is_runnable=element.get("runnable") == "no",
        parent_id=parent_id,
        driver_status=driver_status,
        emulation_status=emulation_status,
    )


def parse_machine_list(
    raw_text: Union[str, bytes],
    *,
    max_workers: Optional[int] = None,
) -> Dict[str, MachineRecord]:
    """Parse a full ``-listxml`` dump into a mapping of id to record.

    Args:
        raw_text: Emulator output, text or raw bytes.
        max_workers: Thread pool size; ``1`` forces serial parsing.

    Returns:
        Dict of machine id to :class:`MachineRecord`. Later duplicates win.

    Raises:
        ParseError: The text contains no machine blocks at all.
    """
    if isinstance(raw_text, bytes):
        raw_text = raw_text.decode("utf-8", errors="replace")

    blocks = split_machine_blocks(raw_text or "")
    if not blocks:
        raise ParseError("Machine list contains no machine entries", source="listxml")

    if max_workers == 1 or len(blocks) < _SERIAL_PARSE_LIMIT:
        parsed = [parse_machine_block(block) for block in blocks]
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            parsed = list(executor.map(parse_machine_block, blocks))

    records: Dict[str, MachineRecord] = {}
    dropped = 0
    for record in parsed:
        if record is None:
            dropped += 1
            continue
        records[record.id] = record

    if dropped:
        logger.warning("Machine list: %d of %d blocks dropped", dropped, len(blocks))
    logger.info("Machine list parsed: %d machines", len(records))
    return records


def catalog_stats(records: Mapping[str, MachineRecord]) -> CatalogStats:
    total = 0
    working = 0
    parents = set()
    clones = 0
    for record in records.values():
        if record.parent_id:
            clones += 1
            parents.add(record.parent_id)
        if not record.is_game:
            continue
        total += 1
        if not record.is_mechanical and record.can_run:
            working += 1
    return CatalogStats(total_games=total, working_games=working, parents=len(parents), clones=clones)


def manufacturers(records: Iterable[MachineRecord]) -> List[str]:
    names = {record.manufacturer for record in records if record.manufacturer}
    return sorted(names, key=str.lower)
