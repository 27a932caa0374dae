"""Tests for track state chunk FX chain helpers."""

import pytest

SOURCE_CHUNK = """<TRACK
NAME "Synth"
<FXCHAIN_REC
BYPASS 0 0 0
<VST "VST: ReaTune (Cockos)" reatune.dll 0 ""
dHVuZQ==
>
FXID {11111111-1111-1111-1111-111111111111}
WAK 0 0
>
<FXCHAIN
SHOW 0
LASTSEL 0
DOCKED 0
BYPASS 0 0 0
<VST "VST: ReaInsert (Cockos)" reainsert.dll 0 ""
ZXZhdxgAAAA=
>
FXID {AAAAAAAA-0000-0000-0000-000000000001}
WAK 0 0
BYPASS 1 0 0
<VST "VST: ReaVerbate (Cockos)" reaverbate.dll 0 ""
cmV2ZXJi
>
FXID {AAAAAAAA-0000-0000-0000-000000000002}
<PARMENV 0:0 0 1 0.5
ACT 1 -1
PT 0 0.5 0
>
WAK 0 0
>
<ITEM
POSITION 0
>
>
"""

EMPTY_TRACK = """<TRACK
NAME "Synth - render"
<ITEM
POSITION 0
>
>
"""


class TestGetFxChain:

    def test_extracts_chain_block(self):
        from hwrender.chunks import get_fx_chain

        chain = get_fx_chain(SOURCE_CHUNK)

        lines = chain.splitlines()
        assert lines[0] == "<FXCHAIN"
        assert lines[-1] == ">"
        assert "ReaVerbate" in chain
        assert "<PARMENV 0:0 0 1 0.5" in chain
        assert "POSITION 0" not in chain

    def test_ignores_input_fx_chain(self):
        from hwrender.chunks import get_fx_chain

        assert "ReaTune" not in get_fx_chain(SOURCE_CHUNK)

    def test_no_chain(self):
        from hwrender.chunks import get_fx_chain

        assert get_fx_chain(EMPTY_TRACK) is None

    def test_unbalanced_chunk(self):
        from hwrender.chunks import ChunkError, get_fx_chain

        broken = "<TRACK\n<FXCHAIN\n<VST \"x\"\n>\n"
        with pytest.raises(ChunkError):
            get_fx_chain(broken)

    def test_not_a_chunk(self):
        from hwrender.chunks import ChunkError, get_fx_chain

        with pytest.raises(ChunkError):
            get_fx_chain("NAME foo")


class TestSetFxChain:

    def test_inserts_before_first_item(self):
        from hwrender.chunks import get_fx_chain, set_fx_chain

        chain = get_fx_chain(SOURCE_CHUNK)
        result = set_fx_chain(EMPTY_TRACK, chain)

        lines = result.splitlines()
        assert lines.index("<FXCHAIN") < lines.index("<ITEM")
        assert get_fx_chain(result) == chain
        assert result.endswith(">\n")

    def test_inserts_before_track_end_without_items(self):
        from hwrender.chunks import get_fx_chain, set_fx_chain

        chain = get_fx_chain(SOURCE_CHUNK)
        result = set_fx_chain('<TRACK\nNAME "x"\n>', chain)

        lines = result.splitlines()
        assert lines[0] == "<TRACK"
        assert lines[2] == "<FXCHAIN"
        assert lines[-1] == ">"
        assert not result.endswith("\n")

    def test_replaces_existing_chain(self):
        from hwrender.chunks import get_fx_chain, set_fx_chain

        new_chain = "<FXCHAIN\nSHOW 0\n>"
        result = set_fx_chain(SOURCE_CHUNK, new_chain)

        assert get_fx_chain(result) == new_chain
        assert "ReaVerbate" not in result
        # Input FX and items are untouched
        assert "ReaTune" in result
        assert "<ITEM" in result

    def test_rejects_non_chain(self):
        from hwrender.chunks import ChunkError, set_fx_chain

        with pytest.raises(ChunkError):
            set_fx_chain(EMPTY_TRACK, "<ITEM\n>")


class TestFxChainContents:

    def test_count_fx_skips_envelopes(self):
        from hwrender.chunks import count_fx, get_fx_chain

        assert count_fx(get_fx_chain(SOURCE_CHUNK)) == 2

    def test_count_fx_empty_chain(self):
        from hwrender.chunks import count_fx

        assert count_fx("<FXCHAIN\nSHOW 0\n>") == 0

    def test_renew_fx_guids(self):
        from hwrender.chunks import get_fx_chain, renew_fx_guids

        chain = get_fx_chain(SOURCE_CHUNK)
        renewed = renew_fx_guids(chain)

        fxids = [line.split()[1] for line in renewed.splitlines() if line.startswith("FXID")]
        assert len(fxids) == 2
        assert len(set(fxids)) == 2
        assert "{AAAAAAAA-0000-0000-0000-000000000001}" not in renewed
        # Everything else is unchanged
        strip = lambda text: [l for l in text.splitlines() if not l.startswith("FXID")]
        assert strip(renewed) == strip(chain)
