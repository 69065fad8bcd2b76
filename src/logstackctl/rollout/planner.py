"""Dependency planning for deployment units."""

from collections import defaultdict
from dataclasses import dataclass, field

from logstackctl.core.exceptions import ConfigurationError, DependencyCycleError
from logstackctl.rollout.models import DeploymentUnit


@dataclass(frozen=True)
class Wave:
    """One rollout tier: units with no ordering constraint between them."""

    number: int
    units: tuple[DeploymentUnit, ...]

    @property
    def names(self) -> list[str]:
        return [u.name for u in self.units]


@dataclass(frozen=True)
class ExecutionPlan:
    """Ordered waves; every dependency sits in a strictly earlier wave."""

    waves: tuple[Wave, ...] = field(default_factory=tuple)

    @property
    def units(self) -> list[DeploymentUnit]:
        return [u for w in self.waves for u in w.units]

    def wave_of(self, name: str) -> int:
        for wave in self.waves:
            if name in wave.names:
                return wave.number
        raise KeyError(name)

    def __len__(self) -> int:
        return len(self.waves)


class DependencyPlanner:
    """Build and validate the wave plan (DAG) for a set of units."""

    def __init__(self, units: list[DeploymentUnit]):
        """Initialize the planner.

        Args:
            units: deployment units with wave and depends_on fields

        Raises:
            ConfigurationError: on duplicate names or unknown dependencies
        """
        self.units: dict[str, DeploymentUnit] = {}
        self.dependencies: dict[str, set[str]] = defaultdict(set)
        self._build_graph(units)

    def _build_graph(self, units: list[DeploymentUnit]) -> None:
        """Build adjacency lists for dependencies."""
        for unit in units:
            if unit.name in self.units:
                raise ConfigurationError(
                    f"duplicate deployment unit '{unit.name}'", unit=unit.name
                )
            self.units[unit.name] = unit

        for unit in units:
            for dep in sorted(unit.depends_on):
                if dep not in self.units:
                    raise ConfigurationError(
                        f"unit '{unit.name}' depends on unknown unit '{dep}'",
                        unit=unit.name,
                    )
                self.dependencies[unit.name].add(dep)

    def validate(self) -> None:
        """Check for cycles and wave-ordering violations.

        Raises:
            DependencyCycleError: if a cycle is detected
            ConfigurationError: if a dependency is not in a strictly lower wave
        """
        self._check_cycles()

        for name in sorted(self.units):
            unit = self.units[name]
            for dep in sorted(self.dependencies.get(name, set())):
                dep_wave = self.units[dep].wave
                if dep_wave >= unit.wave:
                    raise ConfigurationError(
                        f"unit '{name}' (wave {unit.wave}) depends on '{dep}' "
                        f"(wave {dep_wave}); dependencies must be in a strictly earlier wave",
                        unit=name,
                    )

    def _check_cycles(self) -> None:
        visited: set[str] = set()
        rec_stack: set[str] = set()
        path: list[str] = []

        def visit(node: str) -> None:
            visited.add(node)
            rec_stack.add(node)
            path.append(node)

            for dep in sorted(self.dependencies.get(node, set())):
                if dep not in visited:
                    visit(dep)
                elif dep in rec_stack:
                    cycle_start = path.index(dep)
                    raise DependencyCycleError(path[cycle_start:] + [dep])

            path.pop()
            rec_stack.remove(node)

        for name in sorted(self.units):
            if name not in visited:
                visit(name)

    def plan(self) -> ExecutionPlan:
        """Validate and return the units grouped into increasing waves.

        Units inside a wave are listed by name for stable output; no
        ordering between them is implied.
        """
        self.validate()

        by_wave: dict[int, list[DeploymentUnit]] = defaultdict(list)
        for unit in self.units.values():
            by_wave[unit.wave].append(unit)

        waves = tuple(
            Wave(number=n, units=tuple(sorted(by_wave[n], key=lambda u: u.name)))
            for n in sorted(by_wave)
        )
        return ExecutionPlan(waves=waves)


def plan_units(units: list[DeploymentUnit]) -> ExecutionPlan:
    """Convenience wrapper: build, validate and plan in one call."""
    return DependencyPlanner(units).plan()
