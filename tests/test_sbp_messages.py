import pytest

from sbp_messages import (
    GAL_CODES,
    GPS_CODES,
    MessageKind,
    Sid,
    classify,
)

from helpers import eph_record, obs_record, ssr_record


class TestSid:
    def test_str_without_iod(self):
        assert str(Sid(3, 1)) == "3:1"

    def test_str_with_iod(self):
        assert str(Sid(12, 0, 7)) == "12:0-7"

    def test_iod_zero_is_rendered(self):
        assert str(Sid(12, 0, 0)) == "12:0-0"

    def test_ordering(self):
        sids = [Sid(5, 1), Sid(3, 14), Sid(3, 1, 8), Sid(3, 1), Sid(3, 1, 7)]
        assert sorted(sids) == [Sid(3, 1), Sid(3, 1, 7), Sid(3, 1, 8), Sid(3, 14), Sid(5, 1)]

    def test_equality_covers_iod(self):
        assert Sid(3, 1) == Sid(3, 1)
        assert Sid(3, 1, 7) != Sid(3, 1, 8)
        assert len({Sid(3, 1), Sid(3, 1), Sid(3, 1, 7)}) == 2


def test_code_tables_do_not_overlap():
    assert not GPS_CODES & GAL_CODES
    assert 0 in GPS_CODES
    assert 14 in GAL_CODES and 61 in GAL_CODES


class TestObservation:
    def test_epoch_is_tow_seconds(self):
        msg = classify(obs_record(1000, 66, [(3, 1)]))
        assert msg.kind == MessageKind.OBS
        assert msg.sender == 66
        assert msg.epoch == 1

    def test_epoch_truncates(self):
        assert classify(obs_record(345999, 66, [])).epoch == 345

    def test_sids_deduplicated_without_iod(self):
        msg = classify(obs_record(1000, 66, [(3, 1), (3, 1), (7, 14)]))
        assert msg.sids == frozenset({Sid(3, 1), Sid(7, 14)})

    def test_empty_obs_list_still_classifies(self):
        msg = classify(obs_record(2000, 66, []))
        assert msg is not None
        assert msg.sids == frozenset()

    def test_bad_entries_are_skipped(self):
        record = obs_record(1000, 66, [(3, 1)])
        record["obs"].append({"sid": {"sat": 4}})
        record["obs"].append({"sid": {"code": 1}})
        record["obs"].append({"cn0": 10})
        record["obs"].append("garbage")
        assert classify(record).sids == frozenset({Sid(3, 1)})

    def test_missing_obs_list_drops(self):
        record = obs_record(1000, 66, [(3, 1)])
        del record["obs"]
        assert classify(record) is None

    def test_missing_tow_drops(self):
        record = obs_record(1000, 66, [(3, 1)])
        del record["header"]["t"]["tow"]
        assert classify(record) is None


class TestEphemeris:
    @pytest.mark.parametrize("msg_type", [138, 149])
    def test_classifies(self, msg_type):
        msg = classify(eph_record(5, 10, 12, 14, iode=7, msg_type=msg_type))
        assert msg.kind == MessageKind(msg_type)
        assert msg.epoch == 5
        assert msg.sids == frozenset({Sid(12, 14, 7)})

    def test_iode_optional(self):
        assert classify(eph_record(5, 10, 12, 0)).sids == frozenset({Sid(12, 0)})

    def test_missing_sat_drops(self):
        record = eph_record(5, 10, 12, 0, iode=7)
        del record["common"]["sid"]["sat"]
        assert classify(record) is None

    def test_missing_toe_drops(self):
        record = eph_record(5, 10, 12, 0)
        del record["common"]["toe"]
        assert classify(record) is None


class TestCorrections:
    @pytest.mark.parametrize("msg_type", [1501, 1505, 1510])
    def test_classifies(self, msg_type):
        msg = classify(ssr_record(30, 0, 9, 1, iod=3, msg_type=msg_type))
        assert msg.kind == MessageKind(msg_type)
        assert msg.sender == 0
        assert msg.epoch == 30
        assert msg.sids == frozenset({Sid(9, 1, 3)})

    def test_missing_code_drops(self):
        record = ssr_record(30, 0, 9, 1)
        del record["sid"]["code"]
        assert classify(record) is None


class TestRejection:
    def test_unknown_msg_type(self):
        assert classify({"msg_type": 65535, "sender": 1, "text": "hi"}) is None

    def test_missing_msg_type(self):
        assert classify({"sender": 1}) is None

    def test_missing_sender(self):
        record = obs_record(1000, 66, [(3, 1)])
        del record["sender"]
        assert classify(record) is None

    @pytest.mark.parametrize("value", [None, "66", -1, 1.5, True])
    def test_malformed_sender(self, value):
        record = obs_record(1000, 66, [(3, 1)])
        record["sender"] = value
        assert classify(record) is None

    def test_negative_tow(self):
        assert classify(ssr_record(-1, 0, 9, 1)) is None

    def test_malformed_iod_is_ignored(self):
        record = ssr_record(30, 0, 9, 1)
        record["iod"] = "x"
        assert classify(record).sids == frozenset({Sid(9, 1)})

    @pytest.mark.parametrize("record", [[1, 2], 5, "text", None])
    def test_non_object_record(self, record):
        assert classify(record) is None
