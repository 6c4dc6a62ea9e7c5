"""Tests for address resolution."""

import pytest

from checkout_engine.application.address_resolver import AddressResolver
from checkout_engine.domain import (
    Address,
    AddressCreationFailedError,
    IncompleteAddressError,
)
from tests.factories import DRAFT_ADDRESS, SAVED_ADDRESS


@pytest.fixture
def resolver(commerce_client, geocoder) -> AddressResolver:
    return AddressResolver(commerce_client, geocoder)


class TestResolve:
    @pytest.mark.asyncio
    async def test_saved_address_used_directly(
        self, resolver, commerce_client, geocoder, ready_session
    ) -> None:
        assert await resolver.resolve(ready_session) == "addr-1"
        geocoder.geocode.assert_not_awaited()
        commerce_client.create_address.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_draft_is_geocoded_and_created(
        self, resolver, commerce_client, ready_session
    ) -> None:
        ready_session.use_draft_address(DRAFT_ADDRESS)

        address_id = await resolver.resolve(ready_session)

        assert address_id == "addr-new"
        sent = commerce_client.create_address.await_args.args[0]
        assert sent.latitude == 6.45
        assert sent.longitude == 3.39
        assert ready_session.submission.address_id == "addr-new"
        commerce_client.list_addresses.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_geocode_miss_still_creates(
        self, resolver, commerce_client, geocoder, ready_session
    ) -> None:
        geocoder.geocode.return_value = None
        ready_session.use_draft_address(DRAFT_ADDRESS)

        await resolver.resolve(ready_session)

        sent = commerce_client.create_address.await_args.args[0]
        assert not sent.has_coordinates()

    @pytest.mark.asyncio
    async def test_incomplete_draft_makes_no_calls(
        self, resolver, commerce_client, geocoder, ready_session
    ) -> None:
        ready_session.use_draft_address(Address(line1="4 Broad Street", city="", state=""))

        with pytest.raises(IncompleteAddressError):
            await resolver.resolve(ready_session)

        geocoder.geocode.assert_not_awaited()
        commerce_client.create_address.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_save_for_later_refreshes_saved_list(
        self, resolver, commerce_client, ready_session
    ) -> None:
        created = Address(id="addr-new", line1="4 Broad Street", city="Lagos Island", state="Lagos")
        commerce_client.list_addresses.return_value = (SAVED_ADDRESS, created)
        ready_session.use_draft_address(DRAFT_ADDRESS, save_for_later=True)

        await resolver.resolve(ready_session)

        commerce_client.list_addresses.assert_awaited_once()
        assert [a.id for a in ready_session.saved_addresses] == ["addr-1", "addr-new"]

    @pytest.mark.asyncio
    async def test_creation_failure_propagates(
        self, resolver, commerce_client, ready_session
    ) -> None:
        commerce_client.create_address.side_effect = AddressCreationFailedError(
            ["State is not served"]
        )
        ready_session.use_draft_address(DRAFT_ADDRESS)

        with pytest.raises(AddressCreationFailedError):
            await resolver.resolve(ready_session)

        assert ready_session.submission.address_id is None

    @pytest.mark.asyncio
    async def test_created_id_is_reused(
        self, resolver, commerce_client, ready_session
    ) -> None:
        ready_session.use_draft_address(DRAFT_ADDRESS)

        await resolver.resolve(ready_session)
        await resolver.resolve(ready_session)

        assert commerce_client.create_address.await_count == 1
