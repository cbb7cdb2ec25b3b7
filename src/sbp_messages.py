"""SBP message classification.

Takes one JSON-decoded SBP message (as produced by the SBP JSON encoder,
one object per line) and reduces it to the few fields the dump report
cares about: message kind, sender, epoch and the set of signal ids.

Only observation, ephemeris (GPS/Galileo) and SSR correction messages are
recognized. Anything else, or a recognized message with a missing field,
classifies to None.
"""

from dataclasses import dataclass
from enum import IntEnum
from functools import total_ordering


class MessageKind(IntEnum):
    """SBP message types handled by the dump (value = SBP msg_type)."""
    OBS = 74
    EPHEMERIS_GPS = 138
    EPHEMERIS_GAL = 149
    SSR_ORBIT_CLOCK = 1501
    SSR_CODE_BIASES = 1505
    SSR_PHASE_BIASES = 1510


MESSAGE_DESCRIPTIONS = {
    MessageKind.OBS: "Observations",
    MessageKind.EPHEMERIS_GPS: "GPS Ephemeris",
    MessageKind.EPHEMERIS_GAL: "Galileo Ephemeris",
    MessageKind.SSR_ORBIT_CLOCK: "SSR Orbit/Clock",
    MessageKind.SSR_CODE_BIASES: "SSR Code Biases",
    MessageKind.SSR_PHASE_BIASES: "SSR Phase Biases",
}

EPHEMERIS_KINDS = frozenset({MessageKind.EPHEMERIS_GPS, MessageKind.EPHEMERIS_GAL})
SSR_KINDS = frozenset({
    MessageKind.SSR_ORBIT_CLOCK,
    MessageKind.SSR_CODE_BIASES,
    MessageKind.SSR_PHASE_BIASES,
})

# SBP signal codes per constellation
GPS_CODES = frozenset({0, 1, 5, 6, 7, 8, 9, 10, 11, 56, 57, 58})
GAL_CODES = frozenset({14, 15, 16, 17, 18, 19, 20, 21, 22, 23, 24, 25, 26, 27, 28, 61})

# Observation time-of-week is in ms, everything else in s
MS_PER_SECOND = 1000


@total_ordering
@dataclass(frozen=True)
class Sid:
    """Satellite + signal code, optionally tagged with an issue of data."""
    sat: int
    code: int
    iod: int | None = None

    def _sort_key(self):
        # absent iod sorts first
        return (self.sat, self.code, self.iod is not None, self.iod or 0)

    def __lt__(self, other):
        if not isinstance(other, Sid):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __str__(self):
        if self.iod is not None:
            return f"{self.sat}:{self.code}-{self.iod}"
        return f"{self.sat}:{self.code}"


@dataclass(frozen=True)
class ClassifiedMessage:
    """Kind, sender, epoch and signal ids extracted from one message."""
    kind: MessageKind
    sender: int
    epoch: int  # GPS week seconds
    sids: frozenset


def _lookup(record, *path):
    """Walk nested dict keys, returning None as soon as a step is missing."""
    value = record
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
        if value is None:
            return None
    return value


def _uint(record, *path):
    """Read a non-negative integer at path, or None."""
    value = _lookup(record, *path)
    # bool is an int subclass but never a valid field value
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return None
    return value


def _observation_sids(obs):
    sids = set()
    for entry in obs:
        sat = _uint(entry, "sid", "sat")
        code = _uint(entry, "sid", "code")
        if sat is None or code is None:
            continue
        sids.add(Sid(sat, code))
    return frozenset(sids)


def _classify_observation(record, sender):
    tow_ms = _uint(record, "header", "t", "tow")
    if tow_ms is None:
        return None
    obs = _lookup(record, "obs")
    if not isinstance(obs, list):
        return None
    return ClassifiedMessage(
        kind=MessageKind.OBS,
        sender=sender,
        epoch=tow_ms // MS_PER_SECOND,
        sids=_observation_sids(obs),
    )


def _classify_ephemeris(record, kind, sender):
    tow = _uint(record, "common", "toe", "tow")
    sat = _uint(record, "common", "sid", "sat")
    code = _uint(record, "common", "sid", "code")
    if tow is None or sat is None or code is None:
        return None
    sid = Sid(sat, code, _uint(record, "iode"))
    return ClassifiedMessage(kind=kind, sender=sender, epoch=tow, sids=frozenset({sid}))


def _classify_correction(record, kind, sender):
    tow = _uint(record, "time", "tow")
    sat = _uint(record, "sid", "sat")
    code = _uint(record, "sid", "code")
    if tow is None or sat is None or code is None:
        return None
    sid = Sid(sat, code, _uint(record, "iod"))
    return ClassifiedMessage(kind=kind, sender=sender, epoch=tow, sids=frozenset({sid}))


def classify(record):
    """Classify one decoded SBP message.

    Returns a ClassifiedMessage, or None when the record is not one of the
    handled message types or lacks any field needed to place it in the
    report. None is routine for a mixed log and is not an error.
    """
    msg_type = _uint(record, "msg_type")
    if msg_type is None:
        return None
    try:
        kind = MessageKind(msg_type)
    except ValueError:
        return None

    sender = _uint(record, "sender")
    if sender is None:
        return None

    if kind == MessageKind.OBS:
        return _classify_observation(record, sender)
    if kind in EPHEMERIS_KINDS:
        return _classify_ephemeris(record, kind, sender)
    return _classify_correction(record, kind, sender)
