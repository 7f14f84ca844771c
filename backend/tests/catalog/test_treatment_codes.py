import pytest

from clinica_dental.services.treatment_codes import (
    UnknownSpecialtyError,
    next_code,
    specialty_prefix,
)


def test_next_code_starts_at_one():
    assert next_code("EN", []) == "EN01"


def test_next_code_follows_highest_existing_number():
    assert next_code("EN", ["EN01", "EN07", "EN03"]) == "EN08"


def test_next_code_ignores_other_prefixes_sharing_letters():
    # OP and OPR share a leading prefix
    assert next_code("OP", ["OPR04", "OP02"]) == "OP03"
    assert next_code("OPR", ["OP09", "OPR01"]) == "OPR02"


def test_next_code_grows_past_width():
    assert next_code("PR", ["PR99"]) == "PR100"
    assert next_code("P", ["P009"], width=3) == "P010"


@pytest.mark.parametrize(
    ("specialty", "prefix"),
    [("Endodoncia", "EN"), ("Ortodoncia", "OR"), (" Implantología ", "IM"), ("Operatoria", "OPR")],
)
def test_specialty_prefix(specialty, prefix):
    assert specialty_prefix(specialty) == prefix


def test_unknown_specialty_raises():
    with pytest.raises(UnknownSpecialtyError):
        specialty_prefix("Astrología")
