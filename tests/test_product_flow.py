"""
Harvest, split-and-ship and receive: custody and quantity conservation.
"""

import pytest

from conftest import (
    ADMIN,
    COLLECTION_POINT,
    FARM,
    FARM_2,
    PROCESSING_UNIT,
    RETAILER,
    STRANGER,
    WAREHOUSE,
)
from agrichain.models.ledger.ledger_models import ZERO_ADDRESS, ProductState, Role
from agrichain.services.ledger import (
    InsufficientQuantity,
    InvalidArgument,
    InvalidDestination,
    InvalidState,
    NotFound,
    NotInTransit,
    Unauthorized,
)


class TestCreateProduct:

    def test_farm_harvest(self, ledger):
        p = ledger.create_product(FARM, "Basmati Paddy", 500, "kg")
        assert p.product_id == 1
        assert p.quantity == 500
        assert p.current_owner == FARM
        assert p.current_state == ProductState.AT_FARM
        assert p.parent_product_id == 0
        assert p.history[0].details == "Harvested 500 kg"
        assert p.history[0].actor_role == Role.FARM
        assert ledger.product_counter() == 1

    @pytest.mark.parametrize("caller", [ADMIN, WAREHOUSE, RETAILER, STRANGER])
    def test_non_farm_cannot_harvest(self, ledger, caller):
        with pytest.raises(Unauthorized):
            ledger.create_product(caller, "Paddy", 10, "kg")
        assert ledger.product_counter() == 0

    @pytest.mark.parametrize("qty", [0, -5])
    def test_quantity_must_be_positive(self, ledger, qty):
        with pytest.raises(InvalidArgument):
            ledger.create_product(FARM, "Paddy", qty, "kg")

    def test_ids_are_sequential(self, ledger):
        a = ledger.create_product(FARM, "A", 1, "kg")
        b = ledger.create_product(FARM_2, "B", 2, "kg")
        assert (a.product_id, b.product_id) == (1, 2)


class TestSplitAndShip:

    def test_ship_and_receive(self, ledger):
        ledger.create_product(FARM, "Basmati Paddy", 500, "kg")

        child = ledger.split_and_ship(FARM, 1, 200, WAREHOUSE)
        assert child.product_id == 2
        assert child.parent_product_id == 1
        assert child.parent_ids == [1]
        assert child.quantity == 200
        assert child.current_state == ProductState.IN_TRANSIT
        assert child.current_owner == FARM
        assert child.destination_address == WAREHOUSE
        assert ledger.get_product(1).quantity == 300

        received = ledger.receive_product(WAREHOUSE, 2)
        assert received.current_state == ProductState.AT_WAREHOUSE
        assert received.current_owner == WAREHOUSE
        assert received.destination_address == ZERO_ADDRESS
        assert received.history[-1].details == "Received by Warehouse"

    def test_ship_more_than_available_leaves_source_unchanged(self, ledger):
        ledger.create_product(FARM, "Paddy", 500, "kg")
        ledger.split_and_ship(FARM, 1, 200, WAREHOUSE)
        before = ledger.get_product(1).to_dict()

        with pytest.raises(InsufficientQuantity):
            ledger.split_and_ship(FARM, 1, 9999, WAREHOUSE)

        assert ledger.get_product(1).to_dict() == before
        assert ledger.product_counter() == 2

    def test_ship_entire_quantity_keeps_record_at_zero(self, ledger):
        ledger.create_product(FARM, "Paddy", 50, "kg")
        ledger.split_and_ship(FARM, 1, 50, COLLECTION_POINT)
        source = ledger.get_product(1)
        assert source.exists
        assert source.quantity == 0
        assert source.current_state == ProductState.AT_FARM

    def test_only_owner_can_ship(self, ledger):
        ledger.create_product(FARM, "Paddy", 50, "kg")
        with pytest.raises(Unauthorized):
            ledger.split_and_ship(FARM_2, 1, 10, WAREHOUSE)

    def test_unknown_product(self, ledger):
        with pytest.raises(NotFound):
            ledger.split_and_ship(FARM, 42, 1, WAREHOUSE)

    @pytest.mark.parametrize("qty", [0, -1])
    def test_ship_quantity_must_be_positive(self, ledger, qty):
        ledger.create_product(FARM, "Paddy", 50, "kg")
        with pytest.raises(InvalidArgument):
            ledger.split_and_ship(FARM, 1, qty, WAREHOUSE)


class TestDestinations:

    @pytest.mark.parametrize("dest", [COLLECTION_POINT, WAREHOUSE, PROCESSING_UNIT, RETAILER])
    def test_farm_stock_can_go_to_any_handler(self, ledger, dest):
        ledger.create_product(FARM, "Paddy", 50, "kg")
        assert ledger.split_and_ship(FARM, 1, 5, dest).destination_address == dest

    @pytest.mark.parametrize("dest", [FARM_2, ADMIN, STRANGER, ZERO_ADDRESS])
    def test_invalid_destinations(self, ledger, dest):
        ledger.create_product(FARM, "Paddy", 50, "kg")
        with pytest.raises(InvalidDestination):
            ledger.split_and_ship(FARM, 1, 5, dest)
        assert ledger.get_product(1).quantity == 50

    def test_cannot_ship_to_self(self, ledger):
        ledger.create_product(FARM, "Paddy", 50, "kg")
        with pytest.raises(InvalidDestination):
            ledger.split_and_ship(FARM, 1, 5, FARM)

    def test_bad_destination_address(self, ledger):
        ledger.create_product(FARM, "Paddy", 50, "kg")
        with pytest.raises(InvalidDestination):
            ledger.split_and_ship(FARM, 1, 5, "0x1234")

    def test_warehouse_cannot_ship_back_to_collection_point(self, ledger, delivered):
        ledger.create_product(FARM, "Paddy", 50, "kg")
        delivered(FARM, 1, 20, WAREHOUSE)
        with pytest.raises(InvalidDestination):
            ledger.split_and_ship(WAREHOUSE, 2, 5, COLLECTION_POINT)

    def test_processing_unit_ships_to_warehouse(self, ledger, delivered):
        ledger.create_product(FARM, "Paddy", 50, "kg")
        delivered(FARM, 1, 20, PROCESSING_UNIT)
        child = ledger.split_and_ship(PROCESSING_UNIT, 2, 5, WAREHOUSE)
        assert child.current_state == ProductState.IN_TRANSIT

    def test_retailer_stock_cannot_be_shipped(self, ledger, delivered):
        ledger.create_product(FARM, "Paddy", 50, "kg")
        delivered(FARM, 1, 20, RETAILER)
        with pytest.raises(InvalidState):
            ledger.split_and_ship(RETAILER, 2, 5, WAREHOUSE)

    def test_in_transit_record_cannot_be_reshipped(self, ledger):
        ledger.create_product(FARM, "Paddy", 50, "kg")
        ledger.split_and_ship(FARM, 1, 20, WAREHOUSE)
        # the shipper still owns the in-transit child
        with pytest.raises(InvalidState):
            ledger.split_and_ship(FARM, 2, 5, RETAILER)


class TestReceive:

    def test_wrong_recipient_is_rejected(self, ledger):
        ledger.create_product(FARM, "Paddy", 50, "kg")
        ledger.split_and_ship(FARM, 1, 20, WAREHOUSE)

        for caller in (RETAILER, FARM, STRANGER):
            with pytest.raises(Unauthorized):
                ledger.receive_product(caller, 2)
        p = ledger.get_product(2)
        assert p.current_state == ProductState.IN_TRANSIT
        assert p.current_owner == FARM

    def test_receive_twice(self, ledger, delivered):
        ledger.create_product(FARM, "Paddy", 50, "kg")
        delivered(FARM, 1, 20, WAREHOUSE)
        with pytest.raises(NotInTransit):
            ledger.receive_product(WAREHOUSE, 2)

    def test_not_in_transit_is_an_invalid_state(self, ledger):
        ledger.create_product(FARM, "Paddy", 50, "kg")
        with pytest.raises(InvalidState):
            ledger.receive_product(FARM, 1)

    @pytest.mark.parametrize("dest,state", [
        (COLLECTION_POINT, ProductState.AT_COLLECTION_POINT),
        (PROCESSING_UNIT, ProductState.AT_PROCESSING_UNIT),
        (RETAILER, ProductState.AT_RETAILER),
    ])
    def test_holding_state_follows_receiver_role(self, ledger, delivered, dest, state):
        ledger.create_product(FARM, "Paddy", 50, "kg")
        assert delivered(FARM, 1, 20, dest).current_state == state


class TestConservation:

    def test_quantity_is_creation_minus_consumed(self, ledger, delivered):
        ledger.create_product(FARM, "Paddy", 500, "kg")
        delivered(FARM, 1, 120, COLLECTION_POINT)             # 2
        ledger.split_and_ship(FARM, 1, 80, WAREHOUSE)         # 3
        delivered(COLLECTION_POINT, 2, 100, PROCESSING_UNIT)  # 4
        ledger.process_product(PROCESSING_UNIT, 4, 60, "Rice", 40, "kg")

        assert ledger.get_product(1).quantity == 500 - 120 - 80
        assert ledger.get_product(2).quantity == 120 - 100
        assert ledger.get_product(4).quantity == 100 - 60
        for pid in range(1, ledger.product_counter() + 1):
            assert ledger.get_product(pid).quantity >= 0

    def test_reads_are_snapshots(self, ledger):
        ledger.create_product(FARM, "Paddy", 50, "kg")
        snap = ledger.get_product(1)
        snap.quantity = 1
        snap.history.clear()
        assert ledger.get_product(1).quantity == 50
        assert len(ledger.get_product(1).history) == 1

    def test_unknown_id_returns_zero_record(self, ledger):
        p = ledger.get_product(99)
        assert p.product_id == 0
        assert not p.exists
        assert p.to_dict()["currentOwner"] == ZERO_ADDRESS
