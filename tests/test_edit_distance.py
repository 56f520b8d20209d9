import pytest

from targets.services.edit_distance import distance


@pytest.mark.parametrize('a, b, expected', [
    ('KITTEN', 'SITTING', 3),
    ('A', 'A', 0),
    ('', 'ABC', 3),
    ('ABC', '', 3),
    ('', '', 0),
])
def test_distance(a, b, expected):
    assert distance(a, b) == expected


def test_distance_ignores_case():
    assert distance('Ashish Bhatt', 'ASHISH BHATT') == 0


def test_distance_is_symmetric():
    assert distance('A M AUTO SALES', 'AM AUTO SALE') == distance('AM AUTO SALE', 'A M AUTO SALES')


def test_distance_treats_none_as_empty():
    assert distance(None, 'AB') == 2
