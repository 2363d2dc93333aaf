from pathlib import Path
from typing import Optional

import pysam

from readmerge.loader import load_profiles, profile_from_read, read_positions
from readmerge.nucleotide import ANY, nuc2bits
from readmerge.toy_data import make_toy_data


def make_read(seq: str, cigar, start: int = 100, quals: Optional[str] = None) -> pysam.AlignedSegment:
    a = pysam.AlignedSegment()
    a.query_name = "r1"
    a.query_sequence = seq
    a.flag = 0
    a.reference_start = start
    a.mapping_quality = 60
    a.cigartuples = cigar
    a.query_qualities = pysam.qualitystring_to_array(quals or "I" * len(seq))
    return a


def sites(read: pysam.AlignedSegment, **kwargs):
    return [(p.column, p.insertion_offset, p.base_mask) for p in read_positions(read, **kwargs)]


def test_match_only():
    read = make_read("ACGT", [(0, 4)])
    assert sites(read) == [
        (100, 0, nuc2bits("A")),
        (101, 0, nuc2bits("C")),
        (102, 0, nuc2bits("G")),
        (103, 0, nuc2bits("T")),
    ]
    profile = profile_from_read(read)
    assert profile is not None
    assert (profile.left_bound, profile.right_bound) == (100, 103)
    assert profile.contributor_count == 1
    assert profile.name == "r1"
    profile.validate()


def test_insertion_ranks_follow_previous_column():
    read = make_read("ACGTTCAG", [(0, 3), (1, 2), (0, 3)])
    assert [(c, i) for c, i, _ in sites(read)] == [
        (100, 0),
        (101, 0),
        (102, 0),
        (102, 1),
        (102, 2),
        (103, 0),
        (104, 0),
        (105, 0),
    ]
    profile = profile_from_read(read)
    assert profile.sequence() == "ACGTTCAG"
    assert profile.right_bound == 105
    profile.validate()


def test_deletion_leaves_gap():
    read = make_read("ACGCAG", [(0, 3), (2, 2), (0, 3)])
    assert [c for c, _, _ in sites(read)] == [100, 101, 102, 105, 106, 107]
    assert profile_from_read(read).right_bound == 107


def test_soft_clip_and_leading_insertion_dropped():
    read = make_read("TTACGT", [(4, 2), (0, 4)], start=50)
    assert [c for c, _, _ in sites(read)] == [50, 51, 52, 53]

    read = make_read("GGACG", [(1, 2), (0, 3)], start=50)
    assert [(c, i) for c, i, _ in sites(read)] == [(50, 0), (51, 0), (52, 0)]


def test_low_quality_bases_become_gaps():
    # '#' is Q2, 'I' is Q40
    read = make_read("ACGT", [(0, 4)], quals="I#II")
    assert [c for c, _, _ in sites(read, min_baseq=20)] == [100, 102, 103]
    assert len(sites(read, min_baseq=0)) == 4

    profile = profile_from_read(make_read("AC", [(0, 2)], quals="##"), min_baseq=20)
    assert profile is None


def test_unknown_bases_are_any():
    read = make_read("ANT", [(0, 3)])
    assert [m for _, _, m in sites(read)] == [nuc2bits("A"), ANY, nuc2bits("T")]


def test_load_profiles_from_toy_bam(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    by_contig, counts = load_profiles(toy["reads_bam"], progress=False)
    assert list(by_contig) == ["chr1"]
    profiles = by_contig["chr1"]
    assert counts["reads_total"] == 15
    assert counts["reads_used"] == 15
    assert len(profiles) == 15
    # BAM order is coordinate order
    starts = [p.left_bound for p in profiles]
    assert starts == sorted(starts)
    assert all(p.contributor_count == 1 for p in profiles)


def test_load_profiles_region(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    by_contig, counts = load_profiles(toy["reads_bam"], region="chr1:250-320", progress=False)
    assert counts["reads_used"] == 1
    assert by_contig["chr1"][0].left_bound == 260
