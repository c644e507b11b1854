import itertools

import pytest

from ngravsim.tags import Tag, interaction_tag


def test_documented_tag_values():
    assert interaction_tag(Tag.PERIODIC_A, 0, 0) == 25
    assert interaction_tag(Tag.LOCALN, 0, 0) == 37
    assert interaction_tag(Tag.PERIODIC_A, 1, 0) == 25 + 64
    assert interaction_tag(Tag.PERIODIC_A, 0, 1) == 25 + 512


def test_tags_are_unique():
    values = [interaction_tag(tag, 0, 0) for tag in Tag]
    assert len(values) == len(set(values))


@pytest.mark.parametrize("base", [Tag.PERIODIC_A, Tag.NONPERIOD_D, Tag.PERIODIC_C])
def test_interaction_tag_decodes(base):
    for na, nb in itertools.product(range(8), repeat=2):
        tag = interaction_tag(base, na, nb)
        assert tag & 63 == base
        assert (tag >> 6) & 7 == na
        assert (tag >> 9) & 7 == nb


def test_interaction_tags_distinct_across_pairs():
    tags = {interaction_tag(Tag.PERIODIC_B, na, nb) for na in range(8) for nb in range(8)}
    assert len(tags) == 64


def test_zero_types_leave_base_unchanged():
    assert interaction_tag(Tag.POTENTIAL_A, 0, 0) == Tag.POTENTIAL_A


@pytest.mark.parametrize("na, nb", [(8, 0), (0, 8), (-1, 0)])
def test_out_of_range_types_raise(na, nb):
    with pytest.raises(ValueError):
        interaction_tag(Tag.PERIODIC_A, na, nb)