"""Configuration dataclasses and YAML loader for the aquarium visitor simulation."""

from dataclasses import dataclass, field
from typing import List, Tuple, Dict, Any, Optional
from pathlib import Path
import yaml

MOVEMENT_MODES = ("routed", "direct")
CELL_KINDS = ("facility", "decoration", "path", "hole")


@dataclass
class GridConfig:
    width: int
    depth: int
    height: int = 1


@dataclass
class WallSpec:
    wall_type: str  # "rectangle" or "points"
    data: Dict[str, Any]
    kind: str = "facility"  # "facility", "decoration", "path" or "hole"


@dataclass
class TankSpec:
    id: str
    x: int
    z: int
    size: str = "medium"
    width: int = 1
    depth: int = 1
    water_quality: float = 1.0
    fish_ids: List[str] = field(default_factory=list)
    capacity: int = 10


@dataclass
class EntranceSpec:
    id: str
    x: int
    z: int
    edge: str = "south"
    main: bool = False


@dataclass
class LayoutConfig:
    walls: List[WallSpec] = field(default_factory=list)
    tanks: List[TankSpec] = field(default_factory=list)
    entrances: List[EntranceSpec] = field(default_factory=list)


@dataclass
class VisitorConfig:
    spawn_interval_ms: float = 2000.0
    max_visitors: int = 20
    spawn_until_ms: Optional[float] = None  # None = spawn for the whole run
    main_entrance_bias: float = 0.7
    viewing_time: Tuple[float, float] = (4000.0, 8000.0)
    walking_speed: Tuple[float, float] = (0.5, 1.0)
    satisfaction_threshold: Tuple[float, float] = (60.0, 100.0)
    money: Tuple[float, float] = (10.0, 30.0)
    viewing_spend: float = 1.0
    fish_species: List[str] = field(default_factory=lambda: [
        "goldfish", "neon_tetra", "angelfish", "clownfish"])
    tank_sizes: List[str] = field(default_factory=lambda: [
        "medium", "large", "huge"])


@dataclass
class MovementConfig:
    mode: str = "routed"      # "routed" (A* + steering) or "direct"
    arrival_radius: float = 0.5
    max_path_iterations: int = 1000
    slowing_radius: float = 1.5
    separation_weight: float = 1.0
    boundary_weight: float = 1.0
    obstacle_weight: float = 0.5
    wander_weight: float = 0.1


@dataclass
class FootfallConfig:
    diffusion_rate: float = 0.1  # alpha (0.0-1.0)
    decay_rate: float = 0.02     # delta (0.0-1.0)


@dataclass
class SimulationConfig:
    grid: GridConfig
    layout: LayoutConfig
    max_steps: int = 3000
    time_step_ms: float = 100.0
    game_speed: float = 1.0
    visitors: VisitorConfig = field(default_factory=VisitorConfig)
    movement: MovementConfig = field(default_factory=MovementConfig)
    footfall: FootfallConfig = field(default_factory=FootfallConfig)

    # Export flags (can be overridden by CLI)
    csv_enabled: bool = True
    snapshot_enabled: bool = True
    gif_enabled: bool = False
    quiet: bool = False
    seed: Optional[int] = None
    out_dir: Path = field(default_factory=lambda: Path("./output"))


def _range(raw: Dict, key: str, default: Tuple[float, float]) -> Tuple[float, float]:
    """Read a [min, max] pair, accepting a single number as min == max."""
    value = raw.get(key)
    if value is None:
        return default
    if isinstance(value, (int, float)):
        return (float(value), float(value))
    low, high = value
    if low > high:
        raise ValueError(f"{key}: min {low} is greater than max {high}")
    return (float(low), float(high))


def _parse_walls(walls_raw: List[Dict]) -> List[WallSpec]:
    """Parse wall specifications from raw YAML data."""
    walls = []
    for w in walls_raw:
        wall_type = w.get('type', 'rectangle')
        kind = w.get('kind', 'facility')
        if kind not in CELL_KINDS:
            raise ValueError(f"Unknown wall kind: {kind}")
        if wall_type == 'rectangle':
            data = {
                'x': w['x'],
                'z': w['z'],
                'width': w['width'],
                'depth': w['depth']
            }
        elif wall_type == 'points':
            data = {'coords': [tuple(c) for c in w['coords']]}
        else:
            raise ValueError(f"Unknown wall type: {wall_type}")
        walls.append(WallSpec(wall_type=wall_type, data=data, kind=kind))
    return walls


def _parse_tanks(tanks_raw: List[Dict]) -> List[TankSpec]:
    """Parse tank specifications; `fish` may be a count or a list of ids."""
    tanks = []
    for i, t in enumerate(tanks_raw):
        tank_id = str(t.get('id', f"tank_{i + 1}"))
        fish = t.get('fish', [])
        if isinstance(fish, int):
            fish = [f"{tank_id}_fish_{n + 1}" for n in range(fish)]
        quality = float(t.get('water_quality', 1.0))
        if not 0.0 <= quality <= 1.0:
            raise ValueError(f"Tank {tank_id}: water_quality must be within 0..1")
        tanks.append(TankSpec(
            id=tank_id,
            x=t['x'],
            z=t['z'],
            size=t.get('size', 'medium'),
            width=t.get('width', 1),
            depth=t.get('depth', 1),
            water_quality=quality,
            fish_ids=[str(f) for f in fish],
            capacity=t.get('capacity', 10)
        ))
    return tanks


def _parse_entrances(entrances_raw: List[Dict]) -> List[EntranceSpec]:
    """Parse entrance specifications from raw YAML data."""
    return [
        EntranceSpec(
            id=str(e.get('id', f"entrance_{i + 1}")),
            x=e['x'],
            z=e['z'],
            edge=e.get('edge', 'south'),
            main=e.get('main', False)
        )
        for i, e in enumerate(entrances_raw)
    ]


def _parse_visitors(raw: Dict) -> VisitorConfig:
    defaults = VisitorConfig()
    return VisitorConfig(
        spawn_interval_ms=raw.get('spawn_interval_ms', defaults.spawn_interval_ms),
        max_visitors=raw.get('max_visitors', defaults.max_visitors),
        spawn_until_ms=raw.get('spawn_until_ms', defaults.spawn_until_ms),
        main_entrance_bias=raw.get('main_entrance_bias', defaults.main_entrance_bias),
        viewing_time=_range(raw, 'viewing_time_ms', defaults.viewing_time),
        walking_speed=_range(raw, 'walking_speed', defaults.walking_speed),
        satisfaction_threshold=_range(raw, 'satisfaction_threshold',
                                      defaults.satisfaction_threshold),
        money=_range(raw, 'money', defaults.money),
        viewing_spend=raw.get('viewing_spend', defaults.viewing_spend),
        fish_species=raw.get('fish_species', defaults.fish_species),
        tank_sizes=raw.get('tank_sizes', defaults.tank_sizes)
    )


def _parse_movement(raw: Dict) -> MovementConfig:
    defaults = MovementConfig()
    mode = raw.get('mode', defaults.mode)
    if mode not in MOVEMENT_MODES:
        raise ValueError(f"Unknown movement mode: {mode}")
    return MovementConfig(
        mode=mode,
        arrival_radius=raw.get('arrival_radius', defaults.arrival_radius),
        max_path_iterations=raw.get('max_path_iterations',
                                    defaults.max_path_iterations),
        slowing_radius=raw.get('slowing_radius', defaults.slowing_radius),
        separation_weight=raw.get('separation_weight', defaults.separation_weight),
        boundary_weight=raw.get('boundary_weight', defaults.boundary_weight),
        obstacle_weight=raw.get('obstacle_weight', defaults.obstacle_weight),
        wander_weight=raw.get('wander_weight', defaults.wander_weight)
    )


def load_config(config_path: Path) -> SimulationConfig:
    """Load and validate YAML configuration file."""
    with open(config_path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict) or 'grid' not in raw:
        raise ValueError(f"{config_path}: missing 'grid' section")

    # Parse grid config
    grid = GridConfig(
        width=raw['grid']['width'],
        depth=raw['grid']['depth'],
        height=raw['grid'].get('height', 1)
    )

    # Parse layout
    layout_raw = raw.get('layout', {})
    layout = LayoutConfig(
        walls=_parse_walls(layout_raw.get('walls', [])),
        tanks=_parse_tanks(layout_raw.get('tanks', [])),
        entrances=_parse_entrances(layout_raw.get('entrances', []))
    )

    # Parse footfall config (optional)
    ff_raw = raw.get('footfall', {})
    footfall = FootfallConfig(
        diffusion_rate=ff_raw.get('diffusion_rate', FootfallConfig.diffusion_rate),
        decay_rate=ff_raw.get('decay_rate', FootfallConfig.decay_rate)
    )

    # Parse simulation config
    sim_raw = raw.get('simulation', {})

    # Parse export config (optional)
    export_raw = raw.get('export', {})

    return SimulationConfig(
        grid=grid,
        layout=layout,
        max_steps=sim_raw.get('max_steps', 3000),
        time_step_ms=sim_raw.get('time_step_ms', 100.0),
        game_speed=sim_raw.get('game_speed', 1.0),
        visitors=_parse_visitors(raw.get('visitors', {})),
        movement=_parse_movement(raw.get('movement', {})),
        footfall=footfall,
        csv_enabled=export_raw.get('csv', True),
        snapshot_enabled=export_raw.get('snapshot', True),
        gif_enabled=export_raw.get('gif', False),
        seed=sim_raw.get('seed')
    )
