import pytest

from arthaledger.categorizer import Rule, categorize

TEST_RULES = [
    Rule(id=1, keyword="swiggy", category_id=10, priority=5),
    Rule(id=2, keyword="zomato", category_id=10, priority=5),
    Rule(id=3, keyword="uber", category_id=20, priority=3),
    Rule(id=4, keyword="salary", category_id=30, priority=10),
    Rule(id=5, keyword="SALARY", category_id=31, priority=9),
    Rule(id=6, keyword="amazon", category_id=40, priority=5),
    Rule(id=7, keyword="flipkart", category_id=40, priority=5),
]


@pytest.mark.parametrize(
    ("description", "rules", "expected"),
    [
        ("Payment to Swiggy for dinner", TEST_RULES, 10),
        ("ZOMATO ORDER #12345", TEST_RULES, 10),
        ("SALARY CREDIT HDFC", TEST_RULES, 30),
        ("salary march 2026", TEST_RULES, 30),
        ("ATM withdrawal", TEST_RULES, None),
        ("", TEST_RULES, None),
        ("Swiggy food", [], None),
        ("Swiggy food", None, None),
        ("refund from amazon prime", TEST_RULES, 40),
        ("Amazon order shipped", TEST_RULES, 40),
        ("uber ride home", [Rule(id=1, keyword="uber", category_id=99, priority=0)], 99),
    ],
    ids=[
        "exact keyword match",
        "case-insensitive uppercase description",
        "higher priority wins",
        "lower priority does not override",
        "no rule matches",
        "empty description",
        "empty rule list",
        "no rule list",
        "keyword is a substring",
        "tie in priority broken by lower id",
        "single rule match",
    ],
)
def test_categorize(description, rules, expected):
    assert categorize(description, rules) == expected


def test_tie_broken_by_lower_id():
    rules = [
        Rule(id=10, keyword="food", category_id=100, priority=5),
        Rule(id=5, keyword="food", category_id=200, priority=5),
    ]
    assert categorize("food delivery", rules) == 200


def test_higher_priority_beats_lower_id():
    rules = [
        Rule(id=1, keyword="food", category_id=100, priority=1),
        Rule(id=2, keyword="delivery", category_id=200, priority=2),
    ]
    assert categorize("food delivery", rules) == 200


def test_accepts_any_iterable():
    assert categorize("Uber trip", iter(TEST_RULES)) == 20