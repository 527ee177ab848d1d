"""
Crew creation and joining.

create_crew is all-or-nothing: a failure at any step leaves no user,
preference or group behind.
"""

import pytest

from services.crew.errors import AllocationExhausted, InviteNotFound
from services.crew.onboarding.crews import (
    CrewService,
    crew_name_for,
    join_path_for,
)
from services.crew.onboarding.join_codes import JOIN_CODE_ALPHABET, CodeAllocator


def scripted(*codes):
    it = iter(codes)
    return lambda length: next(it)


def service_with_codes(store, *codes):
    return CrewService(store, CodeAllocator(store, generator=scripted(*codes)))


class TestHelpers:
    @pytest.mark.parametrize(
        "display, expected",
        [
            ("Ada Lovelace", "Ada's City Crew"),
            ("Grace", "Grace's City Crew"),
            ("City Explorer", "City's City Crew"),
        ],
    )
    def test_crew_name_uses_first_name(self, display, expected):
        assert crew_name_for(display) == expected

    def test_join_path_is_lowercase(self):
        assert join_path_for("K7M") == "/join/k7m"


class TestCreateCrew:
    async def test_creates_everything(self, fake_store):
        created = await service_with_codes(fake_store, "K7M").create_crew(
            "Ada Lovelace", {"vibe": ["Cozy"], "budget": ["$$"], "diet": ["Vegan"]}
        )

        assert created.join_code == "K7M"
        assert created.join_path == "/join/k7m"
        assert created.group_name == "Ada's City Crew"
        assert fake_store.users[created.user_id] == "Ada Lovelace"

        group = fake_store.groups[created.group_id]
        assert group["join_code"] == "K7M"
        assert group["created_by_id"] == created.user_id
        assert group["snapshot"] == {"vibe": ["Cozy"], "budget": ["$$"], "diet": ["Vegan"]}

        pref = fake_store.preferences[created.user_id]
        assert pref.budget_range == "$$"
        assert pref.dietary_restrictions == ["Vegan"]
        assert fake_store.commits == 1

    async def test_creator_is_accepted_organizer(self, fake_store):
        created = await service_with_codes(fake_store, "K7M").create_crew("Ada", {})
        participants = fake_store.participants_of(created.group_id)
        assert len(participants) == 1
        assert participants[0].user_id == created.user_id
        assert participants[0].role == "organizer"
        assert participants[0].status == "accepted"

    @pytest.mark.parametrize("name", [None, "", "   "])
    async def test_blank_name_defaults(self, fake_store, name):
        created = await service_with_codes(fake_store, "K7M").create_crew(name, {})
        assert fake_store.users[created.user_id] == "City Explorer"
        assert created.group_name == "City's City Crew"

    async def test_name_is_trimmed(self, fake_store):
        created = await service_with_codes(fake_store, "K7M").create_crew("  Ada  ", {})
        assert fake_store.users[created.user_id] == "Ada"

    async def test_payload(self, fake_store):
        created = await service_with_codes(fake_store, "K7M").create_crew("Ada", {"vibe": ["Cozy"]})
        payload = created.to_payload()
        assert payload["joinCode"] == "K7M"
        assert payload["joinPath"] == "/join/k7m"
        assert payload["groupName"] == "Ada's City Crew"
        assert payload["selectionSnapshot"] == {"vibe": ["Cozy"]}
        assert payload["groupId"] == created.group_id
        assert payload["userId"] == created.user_id

    async def test_malformed_selections_are_cleaned(self, fake_store):
        created = await service_with_codes(fake_store, "K7M").create_crew(
            "Ada", {"vibe": ["Cozy", "", 7], "budget": "$$"}
        )
        assert fake_store.groups[created.group_id]["snapshot"] == {
            "vibe": ["Cozy"],
            "budget": [],
        }

    async def test_default_allocator_draws_from_alphabet(self, fake_store):
        created = await CrewService(fake_store).create_crew("Ada", {})
        assert len(created.join_code) == 3
        assert set(created.join_code) <= set(JOIN_CODE_ALPHABET)

    async def test_collision_is_skipped(self, fake_store):
        fake_store.seed_group("AAA")
        created = await service_with_codes(fake_store, "AAA", "ZZZ").create_crew("Ada", {})
        assert created.join_code == "ZZZ"


class TestCreateCrewFailures:
    async def test_exhaustion_creates_nothing(self, fake_store):
        fake_store.seed_group("AAA")
        users_before = dict(fake_store.users)
        service = service_with_codes(fake_store, *["AAA"] * 15)

        with pytest.raises(AllocationExhausted):
            await service.create_crew("Ada", {"vibe": ["Cozy"]})

        assert fake_store.users == users_before
        assert fake_store.preferences == {}
        assert len(fake_store.groups) == 1
        assert fake_store.rollbacks == 1

    async def test_insert_race_retries_with_fresh_code(self, fake_store):
        fake_store.race_codes.add("K7M")
        created = await service_with_codes(fake_store, "K7M", "Q2X").create_crew("Ada", {})

        assert created.join_code == "Q2X"
        assert fake_store.rollbacks == 1
        # The rolled-back attempt left no orphaned user
        assert list(fake_store.users) == [created.user_id]

    async def test_repeated_race_gives_up(self, fake_store):
        fake_store.race_codes.update({"K7M", "Q2X"})
        with pytest.raises(AllocationExhausted):
            await service_with_codes(fake_store, "K7M", "Q2X").create_crew("Ada", {})
        assert fake_store.groups == {}
        assert fake_store.users == {}

    async def test_store_failure_rolls_back_and_propagates(self, fake_store):
        fake_store.fail_on = "create_group"
        with pytest.raises(RuntimeError):
            await service_with_codes(fake_store, "K7M").create_crew("Ada", {})
        assert fake_store.users == {}
        assert fake_store.preferences == {}
        assert fake_store.rollbacks == 1


class TestJoinCrew:
    async def test_adds_accepted_member(self, fake_store):
        group_id = fake_store.seed_group("K7M")
        joined = await CrewService(fake_store).join_crew("k7m", "Grace")

        assert joined.group_id == group_id
        assert joined.role == "member"
        assert joined.status == "accepted"
        assert fake_store.users[joined.user_id] == "Grace"
        assert len(fake_store.participants_of(group_id)) == 2
        assert fake_store.commits == 1

    async def test_unknown_code(self, fake_store):
        with pytest.raises(InviteNotFound):
            await CrewService(fake_store).join_crew("ZZ9", "Grace")
        assert fake_store.users == {}

    async def test_blank_name_stored_as_none(self, fake_store):
        fake_store.seed_group("K7M")
        joined = await CrewService(fake_store).join_crew("K7M", "  ")
        assert fake_store.users[joined.user_id] is None
