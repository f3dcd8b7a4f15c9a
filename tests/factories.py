"""Test factories for generating driver data with deterministic Faker."""

from typing import Any

from faker import Faker

from trike_dispatch.driver import DriverProfile

TRICYCLE_MODELS = ["Honda TMX 155", "Kawasaki Barako 175", "Yamaha YTX 125", "Suzuki GD110"]
COLORS = ["blue", "red", "yellow", "green", "white"]


class DriverFactory:
    """Factory for driver profiles with deterministic Faker data."""

    DEFAULT_SEED = 42

    def __init__(self, seed: int = DEFAULT_SEED):
        self.fake = Faker("en_PH")
        self.fake.seed_instance(seed)

    def profile(self, **overrides: Any) -> DriverProfile:
        """Create a DriverProfile; any field can be overridden."""
        defaults: dict[str, Any] = {
            "full_name": self.fake.name(),
            "vehicle_model": self.fake.random_element(TRICYCLE_MODELS),
            "vehicle_color": self.fake.random_element(COLORS),
            "plate_number": self.fake.bothify("???-####").upper(),
        }
        defaults.update(overrides)
        return DriverProfile(**defaults)
