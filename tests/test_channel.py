"""Tests for the Fiat-Shamir channel and its script replay."""

import hashlib
import random
from typing import List, Tuple

import pytest

from primitives.commitment import pack_qm31
from primitives.extraction import ExtractionHint
from primitives.field import QM31
from primitives.script import (
    OP_DROP,
    OP_EQUAL,
    OP_FROMALTSTACK,
    OP_NUMEQUALVERIFY,
    OP_TOALTSTACK,
    OP_TRUE,
    Script,
    execute_script,
)
from primitives.u31 import drop_items, qm31_equalverify, qm31_fromaltstack, qm31_push, qm31_toaltstack
from protocol.channel import Channel
from protocol.channel_gadget import ChannelGadget
from tests.conftest import random_digest, random_qm31


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


class TestChannel:

    def test_seed_length_checked(self) -> None:
        with pytest.raises(ValueError):
            Channel(bytes(31))
        with pytest.raises(ValueError):
            Channel(bytes(33))

    def test_absorb_rules(self, seed: bytes) -> None:
        channel = Channel(seed)
        c = bytes(range(32))
        channel.absorb_commitment(c)
        assert channel.state == sha256(seed + c)

        v = random_qm31(random.Random(1))
        before = channel.state
        channel.absorb_qm31(v)
        assert channel.state == sha256(before + pack_qm31(v))

    def test_commitment_length_checked(self, seed: bytes) -> None:
        with pytest.raises(ValueError):
            Channel(seed).absorb_commitment(b"short")

    def test_draw_ratchets_state(self, seed: bytes) -> None:
        channel = Channel(seed)
        value, hint = channel.draw_qm31()
        digest = sha256(seed + b"\x00")
        assert channel.state == sha256(seed)
        assert b"".join(hint.words) + hint.tail == digest
        second, _ = channel.draw_qm31()
        assert second != value

    def test_queries_in_range(self, seed: bytes) -> None:
        for logn in [1, 5, 20, 31]:
            queries, hint = Channel(seed).draw_5queries(logn)
            assert len(queries) == 5
            assert all(0 <= q < (1 << logn) for q in queries)
            assert len(hint.words) == 5

    def test_queries_logn_checked(self, seed: bytes) -> None:
        with pytest.raises(ValueError):
            Channel(seed).draw_5queries(0)

    def test_deterministic(self, seed: bytes) -> None:
        def transcript(s: bytes):
            channel = Channel(s)
            channel.absorb_commitment(bytes(32))
            alpha, _ = channel.draw_qm31()
            channel.absorb_qm31(alpha)
            return alpha, channel.draw_5queries(10)[0]

        assert transcript(seed) == transcript(seed)
        assert transcript(seed) != transcript(sha256(seed))


# --- Script Replay ---

def random_session(rng: random.Random, logn: int, n_ops: int) -> List[Tuple[str, object]]:
    ops = []
    for _ in range(n_ops):
        kind = rng.choice(["commitment", "qm31", "draw"])
        if kind == "commitment":
            ops.append((kind, random_digest(rng)))
        elif kind == "qm31":
            ops.append((kind, random_qm31(rng)))
        else:
            ops.append((kind, None))
    ops.append(("queries", logn))
    return ops


def replay_program(seed: bytes, ops, hint_override=None) -> Script:
    """Witness and replay for a session, checking each draw against native values.

    Absorbed values are pushed in reverse so the first one ends on top.
    """
    channel = Channel(seed)
    hints: List[ExtractionHint] = []
    expected = []
    for kind, arg in ops:
        if kind == "commitment":
            channel.absorb_commitment(arg)
        elif kind == "qm31":
            channel.absorb_qm31(arg)
        elif kind == "draw":
            value, hint = channel.draw_qm31()
            hints.append(hint)
            expected.append(value)
        else:
            queries, hint = channel.draw_5queries(arg)
            hints.append(hint)
            expected.append(queries)
    if hint_override is not None:
        hints = hint_override(hints)

    inputs = Script()
    for kind, arg in reversed(ops):
        if kind == "commitment":
            inputs.push(arg)
        elif kind == "qm31":
            inputs.push(qm31_push(arg))

    body = Script(ChannelGadget.new(seed))
    draws = iter(expected)
    for kind, arg in ops:
        if kind == "commitment":
            body.push(ChannelGadget.absorb_commitment())
        elif kind == "qm31":
            body.push(ChannelGadget.absorb_qm31())
        elif kind == "draw":
            body.push([
                ChannelGadget.draw_element_using_hint(),
                qm31_push(next(draws)),
                qm31_equalverify(),
            ])
        else:
            body.push(ChannelGadget.draw_5queries_using_hint(arg))
            for q in next(draws):
                body.push([OP_TOALTSTACK, q, OP_FROMALTSTACK, OP_NUMEQUALVERIFY])

    return Script([h.push() for h in hints], inputs, body, channel.state, OP_EQUAL)


class TestChannelGadget:

    def test_seed_length_checked(self) -> None:
        with pytest.raises(ValueError):
            ChannelGadget.new(bytes(16))

    def test_absorb_commitment(self, seed: bytes) -> None:
        c = bytes(range(32))
        channel = Channel(seed)
        channel.absorb_commitment(c)
        script = Script(c, ChannelGadget.new(seed), ChannelGadget.absorb_commitment(), channel.state, OP_EQUAL)
        assert execute_script(script).success

    def test_absorb_qm31(self, seed: bytes) -> None:
        v = random_qm31(random.Random(3))
        channel = Channel(seed)
        channel.absorb_qm31(v)
        script = Script(qm31_push(v), ChannelGadget.new(seed), ChannelGadget.absorb_qm31(), channel.state, OP_EQUAL)
        assert execute_script(script).success

    def test_draw_element(self, seed: bytes) -> None:
        channel = Channel(seed)
        value, hint = channel.draw_qm31()
        script = Script(
            hint.push(),
            ChannelGadget.new(seed),
            ChannelGadget.draw_element_using_hint(),
            qm31_toaltstack(),
            channel.state, OP_EQUAL,
            qm31_fromaltstack(),
            qm31_push(value), qm31_equalverify(),
        )
        assert execute_script(script).success

    @pytest.mark.parametrize("logn", [1, 4, 5, 16, 30])
    def test_draw_5queries(self, seed: bytes, logn: int) -> None:
        channel = Channel(seed)
        queries, hint = channel.draw_5queries(logn)
        script = Script(hint.push(), ChannelGadget.new(seed), ChannelGadget.draw_5queries_using_hint(logn))
        for q in queries:
            script.push([OP_TOALTSTACK, q, OP_FROMALTSTACK, OP_NUMEQUALVERIFY])
        script.push([channel.state, OP_EQUAL])
        assert execute_script(script).success

    @pytest.mark.parametrize("session_seed", range(8))
    def test_random_sessions_match_native(self, seed: bytes, session_seed: int) -> None:
        rng = random.Random(session_seed)
        ops = random_session(rng, logn=rng.randrange(2, 21), n_ops=rng.randrange(1, 12))
        assert execute_script(replay_program(seed, ops)).success

    def test_tampered_hint_rejected(self, seed: bytes) -> None:
        ops = [("commitment", bytes(32)), ("draw", None), ("queries", 8)]

        def flip_first_word(hints):
            word = hints[0].words[0]
            hints[0].words[0] = bytes([word[0] ^ 0x80]) + word[1:]
            return hints

        info = execute_script(replay_program(seed, ops, hint_override=flip_first_word))
        assert not info.success
        assert "OP_EQUALVERIFY" in info.error

    def test_hint_from_other_seed_rejected(self, seed: bytes) -> None:
        ops = [("draw", None), ("queries", 8)]
        other_hints = [Channel(sha256(seed)).draw_qm31()[1], Channel(sha256(seed)).draw_5queries(8)[1]]
        info = execute_script(replay_program(seed, ops, hint_override=lambda _: other_hints))
        assert not info.success

    def test_forged_empty_words_rejected(self, seed: bytes) -> None:
        """A hint holding the whole digest in its tail cannot force a zero challenge."""
        digest = sha256(seed + b"\x00")
        forged = ExtractionHint(words=[b""] * 4, tail=digest)
        script = Script(
            forged.push(),
            ChannelGadget.new(seed),
            ChannelGadget.draw_element_using_hint(),
            qm31_push(QM31.zero()),
            qm31_equalverify(),
            sha256(seed),
            OP_EQUAL,
        )
        assert not execute_script(script).success

    def test_forged_query_words_rejected(self, seed: bytes) -> None:
        digest = sha256(seed + b"\x00")
        script = Script(
            ExtractionHint(words=[b""] * 5, tail=digest).push(),
            ChannelGadget.new(seed),
            ChannelGadget.draw_5queries_using_hint(5),
        )
        for _ in range(5):
            script.push([OP_TOALTSTACK, 0, OP_FROMALTSTACK, OP_NUMEQUALVERIFY])
        script.push([sha256(seed), OP_EQUAL])
        assert not execute_script(script).success

    def test_shifted_query_word_rejected(self, seed: bytes) -> None:
        _, hint = Channel(seed).draw_5queries(5)
        hint.words[3], hint.words[4] = hint.words[3] + hint.words[4][:1], hint.words[4][1:]
        script = Script(hint.push(), ChannelGadget.new(seed), ChannelGadget.draw_5queries_using_hint(5),
                        drop_items(5), OP_DROP, OP_TRUE)
        info = execute_script(script)
        assert not info.success
        assert "OP_EQUALVERIFY" in info.error
