"""
Profile Directory Tests
"""
from conftest import CONSIGNER, DRIVER_ANY, DRIVER_LARGE, DRIVER_X, DRIVER_Y, DRIVER_Z
from freight_auction.models import Role, VehicleType


class TestProfileDirectory:

    def test_roles(self, profiles):
        assert profiles.get_role(CONSIGNER) == Role.CONSIGNER
        assert profiles.get_role(DRIVER_X) == Role.DRIVER
        assert profiles.get_role("nobody") is None

    def test_vehicle_types(self, profiles):
        assert profiles.get_vehicle_type(DRIVER_LARGE) == VehicleType.LARGE_TRUCK
        assert profiles.get_vehicle_type(DRIVER_ANY) is None
        assert profiles.get_vehicle_type("nobody") is None

    def test_drivers_for_vehicle_include_unset_vehicle(self, profiles):
        assert set(profiles.driver_ids_for_vehicle(VehicleType.MINI_TRUCK)) == {DRIVER_X, DRIVER_Y, DRIVER_Z, DRIVER_ANY}
        assert set(profiles.driver_ids_for_vehicle(VehicleType.LARGE_TRUCK)) == {DRIVER_LARGE, DRIVER_ANY}
        assert profiles.driver_ids_for_vehicle(VehicleType.THREE_WHEELER) == [DRIVER_ANY]
