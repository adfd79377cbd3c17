"""
Tests for upload range planning and poll backoff.
"""

import pytest

from cloudcore.transfer.backoff import poll_delay_ms
from cloudcore.transfer.chunking import ChunkRange, parse_range_header, plan_chunks

MIB = 1024 * 1024


class TestPlanChunks:
    """Tests for plan_chunks."""

    def test_two_and_a_half_mib(self):
        chunks = plan_chunks(2621440, MIB)
        assert [(c.lower, c.upper) for c in chunks] == [
            (0, 1048575),
            (1048576, 2097151),
            (2097152, 2621440),
        ]
        assert [c.final for c in chunks] == [False, False, True]
        assert chunks[-1].content_range == "bytes 2097152-2621439/2621440"
        assert chunks[0].content_range == "bytes 0-1048575/2621440"

    @pytest.mark.parametrize("size", [1, 1000, MIB - 1, MIB, MIB + 1, 2 * MIB, 5 * MIB + 12345])
    def test_ranges_tile_the_file(self, size):
        chunks = plan_chunks(size, MIB)

        assert sum(c.length for c in chunks) == size
        expected_lower = 0
        for chunk in chunks:
            assert chunk.lower == expected_lower
            expected_lower += chunk.length
        assert expected_lower == size
        assert chunks[-1].final
        assert all(not c.final for c in chunks[:-1])

    def test_exact_multiple_ends_on_final_chunk(self):
        chunks = plan_chunks(2 * MIB, MIB)
        assert len(chunks) == 2
        assert chunks[-1] == ChunkRange(MIB, 2 * MIB, 2 * MIB, final=True)
        assert chunks[-1].length == MIB

    def test_empty_file_has_no_chunks(self):
        assert plan_chunks(0, MIB) == []

    def test_rejects_bad_chunk_size(self):
        with pytest.raises(ValueError):
            plan_chunks(10, 0)

    def test_resume_keeps_target_upper(self):
        chunk = ChunkRange(0, 1048575, 2621440)
        resumed = chunk.resume_from(524287)
        assert resumed.lower == 524288
        assert resumed.upper == 1048575
        assert resumed.length == 524288

    def test_resume_of_final_chunk(self):
        chunk = ChunkRange(2097152, 2621440, 2621440, final=True)
        resumed = chunk.resume_from(2359295)
        assert resumed.content_range == "bytes 2359296-2621439/2621440"
        assert resumed.length == 262144


class TestParseRangeHeader:
    """Tests for parse_range_header."""

    def test_absent(self):
        assert parse_range_header(None) is None

    def test_upper_bound(self):
        assert parse_range_header("bytes=0-1048575") == 1048575

    def test_malformed(self):
        with pytest.raises(ValueError):
            parse_range_header("bytes 0-10")


class TestPollDelay:
    """Tests for poll_delay_ms."""

    def test_sequence_matches_formula(self):
        for attempt in range(1, 40):
            assert poll_delay_ms(attempt) == min(2000 * attempt * 1.5, 60000)

    def test_first_delays(self):
        assert [poll_delay_ms(a) for a in (1, 2, 3)] == [3000, 6000, 9000]

    def test_capped(self):
        assert poll_delay_ms(20) == 60000
        assert poll_delay_ms(1000) == 60000

    def test_attempt_starts_at_one(self):
        with pytest.raises(ValueError):
            poll_delay_ms(0)
