"""Pytest configuration and fixtures."""

import pytest

from config import TreeConfig
from models import MemberRecord
from pipeline import FamilyResolution, resolve_family


def _split(name: str | None) -> tuple[str, str]:
    if not name:
        return ("", "")
    first, _, last = name.strip().partition(" ")
    return (first, last)


@pytest.fixture
def make_member():
    """Factory building a MemberRecord from 'First Last' name strings."""

    def factory(
        member_id: str,
        name: str,
        gender: str = "male",
        father: str | None = None,
        mother: str | None = None,
        spouse: str | None = None,
        birth_order: int | None = None,
        **kwargs,
    ) -> MemberRecord:
        first, last = _split(name)
        father_first, father_last = _split(father)
        mother_first, mother_last = _split(mother)
        spouse_first, spouse_last = _split(spouse)
        return MemberRecord(
            id=member_id,
            first_name=first,
            last_name=last,
            gender=gender,
            father_first_name=father_first,
            father_last_name=father_last,
            mother_first_name=mother_first,
            mother_last_name=mother_last,
            spouse_first_name=spouse_first,
            spouse_last_name=spouse_last,
            birth_order=birth_order,
            **kwargs,
        )

    return factory


@pytest.fixture
def family_records(make_member) -> list[MemberRecord]:
    """Founder couple, the first-generation ancestor, his children and grandchildren."""
    egundebi = "Egundebi Mosuro"
    ayo = "Ayo Ola"
    return [
        make_member("D00Z00001", "Laketu Mosuro", spouse="Princess Ade"),
        make_member("S00Z00001", "Princess Ade", gender="female"),
        make_member(
            "D01Z00002",
            egundebi,
            father="Laketu Mosuro",
            mother="Princess Ade",
            spouse=ayo,
            birth_order=1,
        ),
        make_member("S01Z00001", ayo, gender="female"),
        make_member("D02Z00001", "Adelaja Mosuro", father=egundebi, mother=ayo, birth_order=1),
        make_member(
            "D02Z00002", "Bisi Mosuro", gender="female", father=egundebi, mother=ayo, birth_order=2
        ),
        make_member("D02Z00003", "Kunle Mosuro", father=egundebi, mother=ayo, birth_order=3),
        make_member("D02Z00004", "Tunde Mosuro", father=egundebi, mother=ayo, birth_order=4),
        make_member("D02Z00005", "Femi Mosuro", father=egundebi, mother=ayo, birth_order=5),
        make_member("D03Z00001", "Dayo Mosuro", father="Adelaja Mosuro", birth_order=1),
        make_member(
            "D03Z00002", "Kemi Mosuro", gender="female", father="Adelaja Mosuro", birth_order=2
        ),
    ]


@pytest.fixture
def family(family_records) -> FamilyResolution:
    """Resolved sample family with the default configuration."""
    return resolve_family(family_records, TreeConfig())
