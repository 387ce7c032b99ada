"""
Configuration and metadata for husk generation.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
import json
from pathlib import Path


class Shading(Enum):
    """
    Vertex normal shading mode for the faces stitched from a ring.

    FLAT: hard corners, every face gets its own vertex normals
    SMOOTH: faces share welded vertices and blended normals
    """
    FLAT = "flat"
    SMOOTH = "smooth"

    @property
    def weight(self) -> float:
        """Per-corner shading weight (0.0 is a hard corner)."""
        return 0.0 if self is Shading.FLAT else 1.0


@dataclass
class MeshMetadata:
    """
    Metadata saved as a JSON sidecar next to every exported husk.
    """
    n_vertices: int
    n_triangles: int
    bounds_min: List[float]
    bounds_max: List[float]
    is_watertight: Optional[bool] = None
    generator: str = "husk"
    generation_params: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n_vertices": self.n_vertices,
            "n_triangles": self.n_triangles,
            "bounds_min": self.bounds_min,
            "bounds_max": self.bounds_max,
            "is_watertight": self.is_watertight,
            "generator": self.generator,
            "generation_params": self.generation_params
        }

    def save(self, path: Path) -> None:
        """Save metadata to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MeshMetadata":
        return cls(**data)


@dataclass
class HuskConfig:
    """
    Builder defaults.

    Ring fields left unset fall back to the previous ring; these values are
    used only when no ring in the chain ever set them.
    """

    # Distance between consecutive rings when no axis was ever given
    default_spacing: float = 1.0

    # Shading when no ring set one
    default_shading: Shading = Shading.SMOOTH

    # Spoke distance assigned to rings resolved from a branch
    branch_spoke_distance: float = 1.0

    # Close the first ring of the husk with a reversed cap
    cap_base: bool = True

    # glTF asset generator string
    generator: str = "husk"

    # Embed caller metadata in glTF extras
    embed_metadata: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "default_spacing": self.default_spacing,
            "default_shading": self.default_shading.value,
            "branch_spoke_distance": self.branch_spoke_distance,
            "cap_base": self.cap_base,
            "generator": self.generator,
            "embed_metadata": self.embed_metadata
        }

    @classmethod
    def from_json(cls, path: Path) -> "HuskConfig":
        """Load config from JSON file."""
        with open(path) as f:
            data = json.load(f)
        data["default_shading"] = Shading(data.get("default_shading", "smooth"))
        return cls(**data)

    def save(self, path: Path) -> None:
        """Save config to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


# Global default config
DEFAULT_CONFIG = HuskConfig()
