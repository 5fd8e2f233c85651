import logging
import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from hl7_models import Hl7Message, Hl7Segment, Hl7Field, Hl7Component

logger = logging.getLogger(__name__)

HEADER_SEGMENT = 'MSH'
SEGMENT_TERMINATOR = '\r'
# An MSH at the start of the text or right after any line terminator.
_HEADER_LINE = re.compile(r'(?:^|(?<=[\r\n]))' + HEADER_SEGMENT)

# Observed header indices for the message summary. The parsed MSH array is
# aligned with MSH-n numbering (fields[7] is MSH-7), so these read MSH-6 and
# MSH-8 rather than the nominal MSH-7/MSH-9. Kept as-is for compatibility.
TIMESTAMP_INDEX = 6
MESSAGE_TYPE_INDEX = 8


class Delimiters(BaseModel):
    """The five reserved characters of the pipe encoding."""
    model_config = ConfigDict(frozen=True)

    field: str = '|'
    component: str = '^'
    repetition: str = '~'
    escape: str = '\\'
    subcomponent: str = '&'

    @property
    def encoding_characters(self) -> str:
        """The MSH-2 declaration, e.g. '^~\\&'."""
        return f"{self.component}{self.repetition}{self.escape}{self.subcomponent}"


DEFAULT_DELIMITERS = Delimiters()


def _is_valid_separator(char: str) -> bool:
    return len(char) == 1 and not char.isalnum() and not char.isspace()


def detect_delimiters(raw: str) -> Delimiters:
    """
    Reads the delimiter declaration from the first MSH line: the 4th character is
    the field separator and the token after it holds the encoding characters.
    Falls back to the defaults when the declaration is missing or unusable.
    """
    header_line = next((line for line in split_lines(raw) if line.startswith(HEADER_SEGMENT)), None)
    if header_line is None or len(header_line) < 4:
        logger.warning("No MSH header found. Falling back to default delimiters ('|', '^', '~', '\\', '&').")
        return DEFAULT_DELIMITERS

    field_sep = header_line[3]
    encoding = header_line[4:].split(field_sep)[0] if _is_valid_separator(field_sep) else ''
    declared = [field_sep, *encoding[:4]]
    if len(encoding) < 4 or not all(_is_valid_separator(c) for c in declared) or len(set(declared)) != 5:
        logger.warning(f"Unusable delimiter declaration in '{header_line[:9]}'. Falling back to default delimiters.")
        return DEFAULT_DELIMITERS

    delimiters = Delimiters(
        field=field_sep,
        component=encoding[0],
        repetition=encoding[1],
        escape=encoding[2],
        subcomponent=encoding[3],
    )
    logger.debug(f"Delimiters detected: Field='{delimiters.field}', Encoding='{delimiters.encoding_characters}'")
    return delimiters


def split_lines(raw: str) -> List[str]:
    """Normalizes line terminators and returns the non-blank segment lines."""
    if not raw:
        return []
    normalized = raw.replace('\r\n', SEGMENT_TERMINATOR).replace('\n', SEGMENT_TERMINATOR)
    return [line for line in normalized.split(SEGMENT_TERMINATOR) if line.strip()]


def split_messages(raw: str) -> List[str]:
    """
    Splits text holding several messages into one slice of the original text
    per message, cutting before each MSH line. Terminators and blank lines are
    left untouched, so the slices join back into the input.
    """
    if not raw or not raw.strip():
        return []
    first_line = len(raw) - len(raw.lstrip())
    cuts = [0] + [match.start() for match in _HEADER_LINE.finditer(raw) if match.start() > first_line]
    return [raw[start:end] for start, end in zip(cuts, cuts[1:] + [len(raw)])]


def parse_field(raw: str, position: str, delimiters: Delimiters = DEFAULT_DELIMITERS) -> Hl7Field:
    repetitions = raw.split(delimiters.repetition)
    # Components come from the whole value, not per repetition.
    components = [
        Hl7Component(value=value, position=f"{position}.{idx + 1}")
        for idx, value in enumerate(raw.split(delimiters.component))
    ]
    return Hl7Field(position=position, value=raw, components=components, repetitions=repetitions, raw=raw)


def parse_segment(line: str, delimiters: Delimiters = DEFAULT_DELIMITERS) -> Hl7Segment:
    name = line[:3]
    if name == HEADER_SEGMENT:
        # MSH-1 is the field separator itself, so it is injected rather than split.
        field_strings = [name, delimiters.field, *line[4:].split(delimiters.field)]
    else:
        field_strings = line.split(delimiters.field)

    fields = [parse_field(value, f"{name}.{idx}", delimiters) for idx, value in enumerate(field_strings)]
    return Hl7Segment(name=name, fields=fields, raw=line)


def _field_value(segment: Optional[Hl7Segment], index: int) -> str:
    if segment is None:
        return ''
    field = segment.get_field(index)
    return field.value if field else ''


def parse_message(raw: str, file_name: Optional[str] = None, delimiters: Delimiters = DEFAULT_DELIMITERS) -> Hl7Message:
    """
    Parses raw HL7 v2.x text into an Hl7Message. Never raises: malformed input
    yields a message with fewer or emptier segments.
    """
    segments = [parse_segment(line, delimiters) for line in split_lines(raw or '')]
    header = next((segment for segment in segments if segment.name == HEADER_SEGMENT), None)
    if header is None:
        logger.debug(f"No {HEADER_SEGMENT} segment found in {len(segments)} segments; message type and timestamp left empty.")

    return Hl7Message(
        segments=segments,
        message_type=_field_value(header, MESSAGE_TYPE_INDEX),
        timestamp=_field_value(header, TIMESTAMP_INDEX),
        raw=raw or '',
        file_name=file_name,
    )


def format_hl7_timestamp(ts: str) -> str:
    """Formats YYYYMMDD[HH[MM[SS]]] as 'YYYY-MM-DD HH:MM:SS'."""
    if not ts or len(ts) < 8:
        return ts
    hour = ts[8:10] if len(ts) >= 10 else '00'
    minute = ts[10:12] if len(ts) >= 12 else '00'
    second = ts[12:14] if len(ts) >= 14 else '00'
    return f"{ts[0:4]}-{ts[4:6]}-{ts[6:8]} {hour}:{minute}:{second}"


class Hl7Parser:
    def __init__(self, hl7_string: str, file_name: Optional[str] = None, detect: bool = True):
        self.raw = hl7_string or ''
        self.file_name = file_name
        self.detect = detect

    def _delimiters_for(self, chunk: str) -> Delimiters:
        # Each message in a batch declares its own delimiters in its MSH header.
        return detect_delimiters(chunk) if self.detect else DEFAULT_DELIMITERS

    def parse(self) -> List[Hl7Message]:
        """Parses every message found in the input."""
        messages = [
            parse_message(chunk, self.file_name, self._delimiters_for(chunk))
            for chunk in split_messages(self.raw)
        ]
        logger.info(f"Parsed {len(messages)} message(s) with {sum(len(m.segments) for m in messages)} segments.")
        for message in messages:
            logger.debug(f"  - {message.message_type or 'Unknown'} at {message.timestamp or 'N/A'}: {[s.name for s in message.segments]}")
        return messages
