import pytest

from hedrap.chain.abi import BATTLE_VOTING_ABI, GOVERNOR_ABI
from hedrap.chain.schema import BATTLE, BATTLE_WITH_SCORES, PROPOSAL_VOTES, layout
from hedrap.errors import ChainError

A1 = "0x" + "01" * 20
A2 = "0x" + "02" * 20
ZERO = "0x" + "00" * 20


def battle_tuple(**overrides):
    values = {
        "rapper1Address": A1,
        "rapper2Address": A2,
        "winner": ZERO,
        "rapper1FanVotes": 3,
        "rapper2FanVotes": 1,
        "rapper1JudgeVotes": 0,
        "rapper2JudgeVotes": 2,
        "endTime": 1_700_000_000,
        "status": 0,
        "rapper1Name": "MC Flow",
        "rapper2Name": "Lyric Queen",
        "videoUrl": "ipfs://x",
        "startTime": 1_699_996_400,
    }
    values.update(overrides)
    return tuple(values[f.name] for f in BATTLE.fields)


def test_decode_names_every_field():
    decoded = BATTLE.decode(battle_tuple())

    assert decoded["rapper1Name"] == "MC Flow"
    assert decoded["rapper2FanVotes"] == 1
    assert decoded["status"] == 0
    assert decoded["rapper1Address"] == "0x0101010101010101010101010101010101010101"


def test_decode_rejects_short_tuple():
    with pytest.raises(ChainError, match="expected 13 values, got 12"):
        BATTLE.decode(battle_tuple()[:-1])


def test_decode_rejects_shifted_fields():
    # A string where a uint is declared means the contract layout drifted.
    values = list(battle_tuple())
    values[3] = "3"
    with pytest.raises(ChainError, match="rapper1FanVotes"):
        BATTLE.decode(values)


def test_decode_rejects_bad_address():
    with pytest.raises(ChainError, match="rapper2Address"):
        BATTLE.decode(battle_tuple(rapper2Address="not-an-address"))


def test_scores_layout_extends_battle():
    names = [f.name for f in BATTLE_WITH_SCORES.fields]
    assert names[:13] == [f.name for f in BATTLE.fields]
    assert names[13:] == ["rapper1Score", "rapper2Score"]

    decoded = BATTLE_WITH_SCORES.decode(battle_tuple() + (7500, 2500))
    assert decoded["rapper1Score"] == 7500


def test_single_field_layout_accepts_scalar():
    count = layout("Count", 1, ("value", "uint256"))
    assert count.decode(5) == {"value": 5}


def test_bool_is_not_an_int():
    with pytest.raises(ChainError):
        PROPOSAL_VOTES.decode((True, 1, 2))


def test_bytes_normalize_to_hex():
    blob = layout("Blob", 1, ("data", "bytes32"))
    assert blob.decode(b"\x01" * 32)["data"] == "0x" + "01" * 32


def test_inline_abis_match_layouts():
    by_name = {e["name"]: e for e in BATTLE_VOTING_ABI if e["type"] == "function"}
    assert BATTLE.matches_abi(by_name["getBattle"]["outputs"])
    assert BATTLE_WITH_SCORES.matches_abi(by_name["getBattleWithScores"]["outputs"])

    gov = {e["name"]: e for e in GOVERNOR_ABI if e["type"] == "function"}
    assert PROPOSAL_VOTES.matches_abi(gov["proposalVotes"]["outputs"])


def test_matches_abi_detects_drift():
    outputs = BATTLE.abi_outputs()
    outputs[8] = {"name": "status", "type": "uint256"}
    assert not BATTLE.matches_abi(outputs)
