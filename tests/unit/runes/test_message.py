import pytest

from runescan.runes.message import Edict, RuneId, encode_edicts, encode_message, parse_message
from runescan.utils.exceptions import RuneErrorCodes


def test_fields_only():
    message = parse_message([4, 100, 5, 82, 4, 200])
    assert message.fields == {4: [100, 200], 5: [82]}
    assert message.edicts == []
    assert message.error is None


def test_tag_without_value_stops_softly():
    message = parse_message([4, 100, 3])
    assert message.fields == {4: [100]}
    assert message.error == RuneErrorCodes.TAG_WITHOUT_VALUE


def test_edict_cursor_rule():
    # block 840000 tx 5, same block tx 7, next block 840002 tx 1
    message = parse_message([0, 840000, 5, 1000, 1, 0, 2, 50, 2, 2, 1, 7, 0])
    assert message.edicts == [
        Edict(id=RuneId(840000, 5), amount=1000, output=1),
        Edict(id=RuneId(840000, 7), amount=50, output=2),
        Edict(id=RuneId(840002, 1), amount=7, output=0),
    ]


def test_trailing_partial_edict_ignored():
    message = parse_message([0, 1, 1, 10, 0, 2, 3])
    assert message.edicts == [Edict(id=RuneId(1, 1), amount=10, output=0)]
    assert message.error is None


def test_fields_before_body():
    message = parse_message([2, 1, 0, 1, 0, 5, 1])
    assert message.fields == {2: [1]}
    assert message.edicts == [Edict(id=RuneId(1, 0), amount=5, output=1)]


@pytest.mark.parametrize(
    "edicts",
    [
        [],
        [Edict(RuneId(1, 0), 1, 0)],
        [Edict(RuneId(840000, 3), 10, 1), Edict(RuneId(840000, 3), 20, 2), Edict(RuneId(840000, 9), 30, 0)],
        [Edict(RuneId(2, 5), 2**100, 4), Edict(RuneId(7, 0), 1, 1), Edict(RuneId(7, 12), 3, 2)],
    ],
)
def test_edict_round_trip(edicts):
    encoded = encode_message({}, edicts)
    decoded = parse_message(encoded)
    assert [(e.id.block, e.id.tx, e.amount, e.output) for e in decoded.edicts] == [
        (e.id.block, e.id.tx, e.amount, e.output) for e in edicts
    ]


def test_edict_round_trip_exhaustive_small_grid():
    edicts = []
    for block in range(1, 4):
        for tx in range(0, 4):
            edicts.append(Edict(RuneId(block, tx), block * 100 + tx, tx))
    assert parse_message([0] + encode_edicts(edicts)).edicts == edicts
