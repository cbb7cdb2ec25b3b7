"""Builders for JSON-decoded SBP messages used across the tests."""


def obs_record(tow_ms, sender, sids, msg_type=74):
    return {
        "msg_type": msg_type,
        "sender": sender,
        "header": {"t": {"tow": tow_ms, "ns_residual": 0, "wn": 2200}, "n_obs": 16},
        "obs": [
            {"P": 1234567, "cn0": 180, "lock": 15, "sid": {"sat": sat, "code": code}}
            for sat, code in sids
        ],
    }


def eph_record(tow, sender, sat, code, iode=None, msg_type=138):
    record = {
        "msg_type": msg_type,
        "sender": sender,
        "common": {
            "sid": {"sat": sat, "code": code},
            "toe": {"tow": tow, "wn": 2200},
            "valid": 1,
            "health_bits": 0,
        },
    }
    if iode is not None:
        record["iode"] = iode
    return record


def ssr_record(tow, sender, sat, code, iod=None, msg_type=1501):
    record = {
        "msg_type": msg_type,
        "sender": sender,
        "time": {"tow": tow, "wn": 2200},
        "sid": {"sat": sat, "code": code},
        "update_interval": 5,
    }
    if iod is not None:
        record["iod"] = iod
    return record
