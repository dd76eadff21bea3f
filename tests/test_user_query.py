from __future__ import annotations

import pytest
from conftest import IdentitySeeder

from identity_query.domain.query import MATCH_ALL, Contains, Or
from identity_query.services.errors import InvalidQueryError
from identity_query.services.identity_user_service import IdentityUserService
from identity_query.services.user_query import UserQueryPlan, UserSortField, user_filter_predicate


@pytest.fixture()
def seeded_users(seed: IdentitySeeder) -> None:
    seed.user("anna", email="anna@corp.test", name="Anna", surname="Smith")
    seed.user("bert", email="bert@example.com", name="Bert", surname="Jones")
    seed.user("cleo", email="cleo@example.com", name=None, surname=None)
    seed.user("dora", email="dora@corp.test", name="Dora", surname="Blacksmith")
    seed.user("emil", email="emil@example.com", name="Emil", surname="Brown")


@pytest.mark.usefixtures("seeded_users")
def test_default_sort_is_user_name(service: IdentityUserService) -> None:
    users = service.list_users()
    assert [user.user_name for user in users] == ["anna", "bert", "cleo", "dora", "emil"]


@pytest.mark.usefixtures("seeded_users")
@pytest.mark.parametrize("filter_text", [None, "", "   ", "smith", "example.com", "corp", "zzz", "%"])
def test_count_matches_unbounded_list(service: IdentityUserService, filter_text: str | None) -> None:
    assert service.count_users(filter_text) == len(service.list_users(filter_text))


@pytest.mark.usefixtures("seeded_users")
def test_filter_matches_any_text_field(service: IdentityUserService) -> None:
    assert [user.user_name for user in service.list_users("corp")] == ["anna", "dora"]
    assert [user.user_name for user in service.list_users("Brown")] == ["emil"]
    assert [user.user_name for user in service.list_users("cle")] == ["cleo"]
    assert service.list_users("zzz") == []


@pytest.mark.usefixtures("seeded_users")
def test_filter_case_follows_store_collation(service: IdentityUserService) -> None:
    # SQLite LIKE is case-insensitive for ASCII; other stores may differ.
    assert [user.user_name for user in service.list_users("smith")] == ["anna", "dora"]


@pytest.mark.usefixtures("seeded_users")
def test_filter_wildcards_are_literal(service: IdentityUserService) -> None:
    assert service.list_users("%") == []
    assert service.list_users("_") == []


@pytest.mark.usefixtures("seeded_users")
def test_skip_take_slice_the_sorted_list(service: IdentityUserService) -> None:
    full = [user.id for user in service.list_users(sorting="email")]
    for skip in range(0, 6):
        for take in range(0, 4):
            page = [user.id for user in service.list_users(sorting="email", skip=skip, take=take)]
            assert page == full[skip : skip + take]


@pytest.mark.usefixtures("seeded_users")
def test_sort_by_each_field(service: IdentityUserService) -> None:
    by_email = service.list_users(sorting=UserSortField.EMAIL)
    assert [user.email for user in by_email] == sorted(user.email for user in by_email)

    by_surname = service.list_users("corp", sorting="Surname")
    assert [user.surname for user in by_surname] == ["Blacksmith", "Smith"]


def test_sort_field_parsing() -> None:
    assert UserSortField.parse(None) is UserSortField.USER_NAME
    assert UserSortField.parse("  ") is UserSortField.USER_NAME
    assert UserSortField.parse("UserName") is UserSortField.USER_NAME
    assert UserSortField.parse("userName asc") is UserSortField.USER_NAME
    assert UserSortField.parse("normalized_user_name") is UserSortField.NORMALIZED_USER_NAME
    assert UserSortField.parse("CreatedAt") is UserSortField.CREATED_AT


@pytest.mark.parametrize("sorting", ["PasswordHash", "UserName desc", "UserName, Email", "email asc extra"])
def test_sort_field_parsing_rejects_unsupported_expressions(sorting: str) -> None:
    with pytest.raises(InvalidQueryError):
        UserSortField.parse(sorting)


def test_plan_rejects_negative_paging() -> None:
    with pytest.raises(InvalidQueryError):
        UserQueryPlan(skip=-1)
    with pytest.raises(InvalidQueryError):
        UserQueryPlan(take=-5)


def test_plan_is_an_immutable_value() -> None:
    plan = UserQueryPlan.build("smith", "Email", 2, 10)
    same = UserQueryPlan.build("smith", UserSortField.EMAIL, 2, 10)

    assert plan == same
    with pytest.raises(AttributeError):
        plan.skip = 3  # type: ignore[misc]

    spec = plan.list_spec()
    assert spec.skip == 2
    assert spec.take == 10
    assert spec.order_by[0].field == "email"
    assert spec.predicate == plan.predicate


def test_filter_predicate_covers_text_fields() -> None:
    assert user_filter_predicate(None) == MATCH_ALL
    assert user_filter_predicate(" ") == MATCH_ALL
    assert user_filter_predicate("x") == Or(
        (
            Contains("user_name", "x"),
            Contains("email", "x"),
            Contains("name", "x"),
            Contains("surname", "x"),
        )
    )
