import pytest

from oms.services.remarks import annotate_remark, format_rupees, strip_discount


@pytest.mark.parametrize(
    "cents,expected",
    [(20_000, "200"), (20_050, "200.5"), (20_005, "200.05"), (0, "0")],
)
def test_format_rupees(cents, expected):
    assert format_rupees(cents) == expected


def test_discount_appended_after_existing_text():
    assert annotate_remark("VIP", 20_000) == "VIP | Discount Applied: Rs. 200"


def test_discount_alone_has_no_separator():
    assert annotate_remark(None, 20_000) == "Discount Applied: Rs. 200"
    assert annotate_remark("", 20_000) == "Discount Applied: Rs. 200"


def test_reannotation_never_stacks_fragments():
    once = annotate_remark("VIP", 20_000)
    twice = annotate_remark(once, 20_000)
    assert twice == once
    assert twice.count("Discount Applied") == 1


def test_changed_discount_replaces_fragment():
    remark = annotate_remark("VIP", 20_000)
    assert annotate_remark(remark, 15_050) == "VIP | Discount Applied: Rs. 150.5"


def test_zero_discount_strips_fragment():
    remark = annotate_remark("VIP", 20_000)
    assert annotate_remark(remark, 0) == "VIP"
    assert annotate_remark(remark, None) == "VIP"


def test_strip_handles_decimal_and_middle_fragments():
    remark = "Call first | Discount Applied: Rs. 99.5 | Fragile"
    assert strip_discount(remark) == "Call first | Fragile"


def test_strip_tolerates_missing_space_after_prefix():
    assert strip_discount("VIP | Discount Applied: Rs.200") == "VIP"


def test_text_without_fragment_is_untouched():
    assert annotate_remark("Gate A|B", 0) == "Gate A|B"
    assert strip_discount("Gate A|B") == "Gate A|B"


def test_only_fragment_and_its_separator_are_removed():
    assert annotate_remark("Gate A|B | Discount Applied: Rs. 200", 0) == "Gate A|B"
    assert annotate_remark("Gate A|B", 5_000) == "Gate A|B | Discount Applied: Rs. 50"


def test_leading_fragment_removed_with_following_separator():
    assert strip_discount("Discount Applied: Rs. 200 | Fragile") == "Fragile"
