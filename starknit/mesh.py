import csv
import math
from typing import List, Optional, Sequence, Tuple

from .projections import MeshPosition

Velocity = Tuple[float, float, float]

SETTLE_MIN_FRAMES = 10
SETTLE_MOTION_PER_NODE = 0.6


def load_positions(path: str) -> List[MeshPosition]:
    # One settled node per row, in node-id order; an optional id column is used to check alignment.
    positions: List[MeshPosition] = []
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(line for line in f if not line.startswith("#"))
        header = [h.strip().lower() for h in reader.fieldnames or []]
        if not {"x", "y", "z"} <= set(header):
            raise ValueError(f"Position file {path} needs x, y and z columns")
        for row_num, row in enumerate(reader):
            row = {k.strip().lower(): (v or "").strip() for k, v in row.items() if k}
            node_id = _safe_int(row.get("id", ""))
            if node_id is not None and node_id != row_num:
                raise ValueError(f"Position rows must be in node-id order; row {row_num} has id {node_id}")
            try:
                position = (float(row["x"]), float(row["y"]), float(row["z"]))
            except ValueError as exc:
                raise ValueError(f"Bad coordinate on row {row_num} of {path}") from exc
            if not all(math.isfinite(v) for v in position):
                raise ValueError(f"Non-finite coordinate on row {row_num} of {path}")
            positions.append(position)
    if not positions:
        raise ValueError(f"No positions found in {path}")
    return positions


def write_positions(positions: Sequence[MeshPosition], out_path: str) -> None:
    with open(out_path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["id", "x", "y", "z"])
        for i, (x, y, z) in enumerate(positions):
            writer.writerow([i, x, y, z])


def total_motion(velocities: Sequence[Velocity]) -> float:
    return sum(abs(vx) + abs(vy) + abs(vz) for vx, vy, vz in velocities)


def is_settled(
    velocities: Sequence[Velocity],
    frame_number: int,
    min_frames: int = SETTLE_MIN_FRAMES,
    motion_per_node: float = SETTLE_MOTION_PER_NODE,
) -> bool:
    # The physics run counts as converged once early frames pass and the chain is nearly still.
    if frame_number < min_frames:
        return False
    return total_motion(velocities) <= motion_per_node * len(velocities)


def _safe_int(value: str) -> Optional[int]:
    try:
        return int(value) if value != "" else None
    except ValueError:
        return None
