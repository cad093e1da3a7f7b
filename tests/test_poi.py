"""Points of interest and viewing positions."""

from aquarium_visitors.model.grid import CellType, GridIndex, world_to_grid
from aquarium_visitors.model.poi import POISystem
from aquarium_visitors.model.vector import GridPosition, Vector3

from conftest import make_tank, place_tank


class TestPOIs:

    def test_one_poi_per_tank_centred_on_footprint(self, open_grid, rng):
        tank = place_tank(open_grid, make_tank("reef", x=4, z=4, width=2, depth=2))
        other = place_tank(open_grid, make_tank("bowl", x=1, z=1))
        system = POISystem(open_grid, rng)
        system.update_pois({tank.id: tank, other.id: other})

        assert [p.id for p in system.get_pois()] == ["reef", "bowl"]
        assert system.get_poi("reef").position == Vector3(9.0, 0.0, 9.0)
        assert system.get_poi("bowl").tank is other
        assert system.get_poi("missing") is None

    def test_random_poi(self, open_grid, rng):
        system = POISystem(open_grid, rng)
        assert system.get_random_poi() is None
        tank = place_tank(open_grid, make_tank())
        system.update_pois({tank.id: tank})
        assert system.get_random_poi().id == tank.id


class TestViewingPosition:

    def test_position_is_walkable_and_close(self, open_grid, rng):
        tank = place_tank(open_grid, make_tank("reef", x=4, z=4, width=2, depth=2))
        system = POISystem(open_grid, rng)
        system.update_pois({tank.id: tank})
        poi = system.get_poi("reef")
        footprint = set(tank.footprint())

        for _ in range(30):
            spot = system.calculate_viewing_position(poi)
            assert open_grid.is_walkable_world(spot)
            assert world_to_grid(spot) not in footprint
            assert system.is_within_viewing_distance(spot, poi)
            assert type(spot.x) is float and type(spot.z) is float

    def test_enclosed_tank_has_no_viewing_position(self, open_grid, rng):
        open_grid.place_object(GridPosition(3, 0, 3), 3, 3, CellType.FACILITY)
        cell = open_grid.get_cell(4, 0, 4)
        cell.cell_type = CellType.TANK
        tank = make_tank("boxed", x=4, z=4)
        system = POISystem(open_grid, rng)
        system.update_pois({tank.id: tank})
        assert system.calculate_viewing_position(system.get_poi("boxed")) is None

    def test_viewing_distance(self, open_grid, rng):
        tank = make_tank("t", x=2, z=2)
        system = POISystem(open_grid, rng)
        system.update_pois({tank.id: tank})
        poi = system.get_poi("t")
        assert system.is_within_viewing_distance(Vector3(4, 0, 6.5), poi)
        assert not system.is_within_viewing_distance(Vector3(4, 0, 6.8), poi)
        assert system.is_within_viewing_distance(Vector3(4, 0, 6.8), poi, tolerance=0.5)


class TestExplorationPosition:

    def test_returns_walkable_point(self, open_grid, rng):
        open_grid.place_object(GridPosition(0, 0, 0), 10, 5, CellType.FACILITY)
        system = POISystem(open_grid, rng)
        for _ in range(20):
            point = system.get_random_exploration_position()
            assert open_grid.is_walkable_world(point)
            assert point.z >= 10 - 0.25
            assert type(point.x) is float and type(point.z) is float

    def test_falls_back_to_centre(self, rng):
        grid = GridIndex(3, 3)
        grid.place_object(GridPosition(0, 0, 0), 3, 3, CellType.FACILITY)
        system = POISystem(grid, rng)
        assert system.get_random_exploration_position() == Vector3(2.0, 0.0, 2.0)
