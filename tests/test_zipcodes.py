import pytest

from utils.zipcodes import derive_state, normalize_zipcode, state_from_first_digit


@pytest.mark.parametrize('zipcode,state', [
    ('02139', 'MA'),
    ('10001', 'NY'),
    ('20500', 'DC'),
    ('30301', 'GA'),
    ('60601', 'IL'),
    ('73301', 'TX'),
    ('80202', 'CO'),
    ('94105', 'CA'),
    ('96813', 'HI'),
    ('99501', 'AK'),
    ('97201', 'OR'),
    ('98101', 'WA'),
])
def test_prefix_table(zipcode, state):
    assert derive_state(zipcode) == state


def test_zip_plus_four_is_normalized():
    assert normalize_zipcode(' 02139-4307 ') == '02139'
    assert derive_state('02139-4307') == 'MA'


def test_unassigned_prefix_falls_back_to_first_digit():
    # 000 is not assigned to any state
    assert derive_state('00012') == state_from_first_digit('00012') == 'NY'


@pytest.mark.parametrize('zipcode', [None, '', '   ', 'abcde'])
def test_underivable_zipcodes(zipcode):
    assert derive_state(zipcode) is None
