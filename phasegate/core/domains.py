"""Domain registry and dependency graph.

The execution order is written down rather than computed per call so that
runs are deterministic and auditable. ``DomainGraph`` checks at construction
time that the written order really is a topological sort of the declared
dependencies.
"""

from typing import Dict, FrozenSet, Iterable, List, Mapping, Sequence, Set, Tuple, Union

from .exceptions import ConfigurationError, InitializationError, ValidationError
from .session_state import PHASES, Domain, Phase

ALL_DOMAINS = "all"

WORKER_SUFFIX = "-standards"

# Which domains must complete BEFORE each domain
DOMAIN_DEPENDENCIES: Dict[Domain, Tuple[Domain, ...]] = {
    Domain.NAMING: (),
    Domain.VALIDATION: (),
    Domain.ERROR: (),
    Domain.LOGGING: (Domain.ERROR,),
    Domain.LINT: (Domain.ERROR, Domain.LOGGING),
    Domain.TYPE: (Domain.ERROR, Domain.LINT),
    Domain.HOUSEKEEPING: (Domain.ERROR,),
    Domain.GIT: (Domain.HOUSEKEEPING, Domain.VALIDATION, Domain.ERROR, Domain.TYPE),
    # Hub: receives handoffs from everyone, so it runs last
    Domain.TEST: (
        Domain.ERROR,
        Domain.LOGGING,
        Domain.TYPE,
        Domain.LINT,
        Domain.VALIDATION,
        Domain.NAMING,
        Domain.GIT,
        Domain.HOUSEKEEPING,
    ),
}

DOMAIN_EXECUTION_ORDER: Tuple[Domain, ...] = (
    Domain.NAMING,
    Domain.VALIDATION,
    Domain.ERROR,
    Domain.LOGGING,
    Domain.LINT,
    Domain.TYPE,
    Domain.HOUSEKEEPING,
    Domain.GIT,
    Domain.TEST,
)

# Workers that typically need a follow-up after the key worker finishes
HANDOFF_SUGGESTIONS: Dict[str, Tuple[str, ...]] = {
    "error-standards": ("logging-standards", "test-standards"),
    "logging-standards": ("test-standards",),
    "type-standards": ("lint-standards", "test-standards"),
    "validation-standards": ("error-standards", "test-standards"),
    "housekeeping-standards": ("git-standards", "test-standards"),
    "naming-standards": ("test-standards", "type-standards"),
    "git-standards": ("test-standards",),
    "lint-standards": ("test-standards",),
}


def worker_for(domain: Domain) -> str:
    """Worker identity for a domain, e.g. ``logging-standards``."""
    return f"{Domain(domain).value}{WORKER_SUFFIX}"


def domain_from_worker(worker: str) -> Domain:
    """Reverse of :func:`worker_for`.

    Raises:
        ValidationError: If the name does not identify a known worker
    """
    if not isinstance(worker, str) or not worker.endswith(WORKER_SUFFIX):
        raise ValidationError(
            f"Invalid target agent: {worker!r}. Must end with {WORKER_SUFFIX}",
            hint=f"Use one of: {', '.join(worker_for(d) for d in Domain)}",
        )
    name = worker[: -len(WORKER_SUFFIX)]
    try:
        return Domain(name)
    except ValueError:
        raise ValidationError(
            f"Unknown agent: {worker}",
            hint=f"Use one of: {', '.join(worker_for(d) for d in Domain)}",
        ) from None


def parse_domain(value: Union[str, Domain]) -> Domain:
    """Validated construction of a :class:`Domain`."""
    try:
        return Domain(value)
    except ValueError:
        valid = ", ".join(d.value for d in Domain)
        raise InitializationError(
            f"Unknown domain: {value}",
            hint=f"Valid domains: {valid}, {ALL_DOMAINS}",
        ) from None


def parse_phase(value: Union[str, Phase]) -> Phase:
    """Validated construction of a :class:`Phase`."""
    try:
        return Phase(value)
    except ValueError:
        valid = ", ".join(p.value for p in PHASES)
        raise InitializationError(
            f"Unknown phase: {value}", hint=f"Valid phases: {valid}"
        ) from None


class DomainGraph:
    """
    Dependency graph between domains with one canonical execution order.

    Construction fails with ConfigurationError if the graph has a cycle,
    references an unknown domain, or if ``order`` is not a topological sort
    covering every domain exactly once.
    """

    def __init__(
        self,
        dependencies: Mapping[Domain, Iterable[Domain]],
        order: Sequence[Domain],
    ):
        self._dependencies: Dict[Domain, Tuple[Domain, ...]] = {
            Domain(node): tuple(Domain(dep) for dep in deps)
            for node, deps in dependencies.items()
        }
        self._order: Tuple[Domain, ...] = tuple(Domain(d) for d in order)
        self._index: Dict[Domain, int] = {d: i for i, d in enumerate(self._order)}
        self._validate()

    def _validate(self) -> None:
        nodes = set(self._dependencies)
        for node, deps in self._dependencies.items():
            missing = [d.value for d in deps if d not in nodes]
            if missing:
                raise ConfigurationError(
                    f"Domain {node.value} depends on undeclared domains: {missing}"
                )

        if len(self._index) != len(self._order):
            raise ConfigurationError("Execution order lists a domain more than once")
        if set(self._order) != nodes:
            raise ConfigurationError(
                "Execution order must cover every declared domain exactly once"
            )

        cycle = self._find_cycle()
        if cycle:
            raise ConfigurationError(
                f"Domain dependency cycle: {' -> '.join(d.value for d in cycle)}"
            )

        for node, deps in self._dependencies.items():
            for dep in deps:
                if self._index[dep] >= self._index[node]:
                    raise ConfigurationError(
                        f"Execution order runs {node.value} before its dependency {dep.value}"
                    )

    def _find_cycle(self) -> List[Domain]:
        """Return one dependency cycle as a path, or an empty list."""
        visiting: Set[Domain] = set()
        done: Set[Domain] = set()
        path: List[Domain] = []

        def visit(node: Domain) -> List[Domain]:
            visiting.add(node)
            path.append(node)
            for dep in self._dependencies[node]:
                if dep in visiting:
                    return path[path.index(dep):] + [dep]
                if dep not in done:
                    found = visit(dep)
                    if found:
                        return found
            visiting.discard(node)
            done.add(node)
            path.pop()
            return []

        for node in self._dependencies:
            if node not in done:
                found = visit(node)
                if found:
                    return found
        return []

    @property
    def order(self) -> Tuple[Domain, ...]:
        return self._order

    def resolve_order(self, requested: Union[str, Domain]) -> List[Domain]:
        """
        Resolve the domains to run for a request.

        Args:
            requested: A domain, or "all"

        Returns:
            ``[domain]`` for a single domain, the canonical order for "all"

        Raises:
            InitializationError: If the request names no known domain
        """
        if requested == ALL_DOMAINS:
            return list(self._order)
        domain = parse_domain(requested)
        if domain not in self._index:
            raise InitializationError(f"Domain {domain.value} is not configured")
        return [domain]

    def index_of(self, domain: Domain) -> int:
        return self._index[Domain(domain)]

    def dependencies_of(self, domain: Domain) -> Tuple[Domain, ...]:
        return self._dependencies[Domain(domain)]

    def transitive_dependencies(self, domain: Domain) -> FrozenSet[Domain]:
        """Every domain that must finish before ``domain``, directly or not."""
        seen: Set[Domain] = set()
        stack = list(self._dependencies[Domain(domain)])
        while stack:
            dep = stack.pop()
            if dep not in seen:
                seen.add(dep)
                stack.extend(self._dependencies[dep])
        return frozenset(seen)

    def is_reachable(self, source: Domain, target: Domain) -> bool:
        """True if ``target`` depends, directly or transitively, on ``source``."""
        return Domain(source) in self.transitive_dependencies(target)


DEFAULT_GRAPH = DomainGraph(DOMAIN_DEPENDENCIES, DOMAIN_EXECUTION_ORDER)
