"""Model package for the aquarium visitor simulation."""

from .vector import GridPosition, Vector3
from .grid import GridIndex, GridCell, CellType, grid_to_world, world_to_grid
from .entities import Tank, TankSize, Entrance, Visitor, VisitorState
from .pathfinder import PathFinder
from .smoothing import PathSmoother
from .waypoints import Waypoint, WaypointSystem
from .poi import POI, POISystem
from .visitor_system import VisitorSystem
from .footfall import FootfallField
from .state import VisitorSnapshot, SimulationState
from .engine import SimulationEngine

__all__ = [
    'GridPosition',
    'Vector3',
    'GridIndex',
    'GridCell',
    'CellType',
    'grid_to_world',
    'world_to_grid',
    'Tank',
    'TankSize',
    'Entrance',
    'Visitor',
    'VisitorState',
    'PathFinder',
    'PathSmoother',
    'Waypoint',
    'WaypointSystem',
    'POI',
    'POISystem',
    'VisitorSystem',
    'FootfallField',
    'VisitorSnapshot',
    'SimulationState',
    'SimulationEngine',
]
