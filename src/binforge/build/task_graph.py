"""Task graph engine.

Tasks are registered explicitly with named dependency edges, validated for
acyclicity, then executed in dependency order on a thread pool.

Execution rules:
    - Each task in the plan runs exactly once, after all of its dependencies
    - Ready tasks are dispatched in registration order
    - 'after' edges only order tasks that are both part of the same run
    - The first failure stops dispatching; tasks already running finish but
      nothing that depends on them starts. No retries.
"""

import heapq
import logging
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

from ..config.targets import Target

logger = logging.getLogger(__name__)

TaskAction = Callable[[Any], None]


class TaskGraphError(Exception):
    """Raised for invalid graph definitions (unknown tasks, cycles)."""

    pass


class TaskExecutionError(Exception):
    """Raised when a task fails; carries the task and target that failed."""

    def __init__(self, task_name: str, target: Optional[Target], cause: BaseException):
        self.task_name = task_name
        self.target = target
        self.cause = cause
        where = f" for target {target}" if target is not None else ""
        super().__init__(f"Task '{task_name}' failed{where}: {cause}")


@dataclass(frozen=True)
class Task:
    """A node in the orchestration graph. Tasks without an action are barriers."""

    name: str
    dependencies: Tuple[str, ...] = ()
    action: Optional[TaskAction] = None
    after: Tuple[str, ...] = ()
    target: Optional[Target] = None
    description: str = ""
    requires_provenance: bool = False

    @property
    def is_barrier(self) -> bool:
        return self.action is None


@dataclass
class RunReport:
    """Outcome of a successful run."""

    completed: List[str] = field(default_factory=list)
    timings: Dict[str, float] = field(default_factory=dict)


class TaskGraph:
    """Dependency-ordered collection of tasks."""

    def __init__(self) -> None:
        self._tasks: Dict[str, Task] = {}

    def register(
        self,
        name: str,
        dependencies: Iterable[str] = (),
        action: Optional[TaskAction] = None,
        after: Iterable[str] = (),
        target: Optional[Target] = None,
        description: str = "",
        requires_provenance: bool = False,
    ) -> Task:
        """Register a task.

        Raises:
            TaskGraphError: If a task with the same name already exists
        """
        if name in self._tasks:
            raise TaskGraphError(f"Task '{name}' is already registered")

        task = Task(
            name=name,
            dependencies=tuple(dependencies),
            action=action,
            after=tuple(after),
            target=target,
            description=description,
            requires_provenance=requires_provenance,
        )
        self._tasks[name] = task
        return task

    @property
    def tasks(self) -> List[Task]:
        """All tasks in registration order."""
        return list(self._tasks.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def get(self, name: str) -> Task:
        task = self._tasks.get(name)
        if task is None:
            raise TaskGraphError(
                f"Unknown task '{name}'. Available tasks: {', '.join(self._tasks)}"
            )
        return task

    def validate(self) -> None:
        """Check that every edge points at a known task and there are no cycles.

        Raises:
            TaskGraphError: On unknown dependencies or a dependency cycle
        """
        for task in self._tasks.values():
            for dep in task.dependencies + task.after:
                if dep not in self._tasks:
                    raise TaskGraphError(f"Task '{task.name}' depends on unknown task '{dep}'")

        white, gray, black = 0, 1, 2
        color = {name: white for name in self._tasks}

        for root in self._tasks:
            if color[root] != white:
                continue
            color[root] = gray
            path = [root]
            stack = [iter(self._edges(root))]
            while stack:
                child = next(stack[-1], None)
                if child is None:
                    stack.pop()
                    color[path.pop()] = black
                elif color[child] == gray:
                    cycle = path[path.index(child):] + [child]
                    raise TaskGraphError(f"Dependency cycle: {' -> '.join(cycle)}")
                elif color[child] == white:
                    color[child] = gray
                    path.append(child)
                    stack.append(iter(self._edges(child)))

    def _edges(self, name: str) -> Tuple[str, ...]:
        task = self._tasks[name]
        return task.dependencies + task.after

    def plan(self, names: Iterable[str]) -> List[Task]:
        """Resolve requested tasks and their transitive dependencies.

        Returns:
            Tasks in a valid execution order

        Raises:
            TaskGraphError: If a requested task is unknown or the graph is invalid
        """
        self.validate()

        selected: Set[str] = set()
        pending = [self.get(name).name for name in names]
        while pending:
            name = pending.pop()
            if name in selected:
                continue
            selected.add(name)
            pending.extend(self._tasks[name].dependencies)

        blockers = self._blockers(selected)
        order: List[Task] = []
        ready = [self._index(name) for name, deps in blockers.items() if not deps]
        heapq.heapify(ready)
        names_by_index = list(self._tasks)
        while ready:
            name = names_by_index[heapq.heappop(ready)]
            order.append(self._tasks[name])
            for other, deps in blockers.items():
                if name in deps:
                    deps.discard(name)
                    if not deps:
                        heapq.heappush(ready, self._index(other))
        return order

    def _index(self, name: str) -> int:
        return list(self._tasks).index(name)

    def _blockers(self, selected: Set[str]) -> Dict[str, Set[str]]:
        blockers: Dict[str, Set[str]] = {}
        for name in selected:
            task = self._tasks[name]
            deps = set(task.dependencies)
            deps.update(a for a in task.after if a in selected)
            blockers[name] = deps
        return blockers

    def run(self, names: Iterable[str], context: Any = None, max_workers: int = 1) -> RunReport:
        """Execute the requested tasks and everything they depend on.

        Args:
            names: Task names to run
            context: Object passed to every task action
            max_workers: Upper bound on concurrently running tasks

        Returns:
            RunReport listing completed tasks and their timings

        Raises:
            TaskGraphError: If the request or the graph is invalid
            TaskExecutionError: For the first task that failed
        """
        planned = self.plan(names)
        selected = {task.name for task in planned}
        blockers = self._blockers(selected)
        dependents: Dict[str, List[str]] = {name: [] for name in selected}
        for name, deps in blockers.items():
            for dep in deps:
                dependents[dep].append(name)

        order = {name: i for i, name in enumerate(self._tasks)}
        names_by_index = list(self._tasks)
        ready = [order[name] for name, deps in blockers.items() if not deps]
        heapq.heapify(ready)

        report = RunReport()
        failure: Optional[TaskExecutionError] = None
        running: Dict[Future, Task] = {}

        with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
            while ready or running:
                while ready and failure is None and len(running) < max(1, max_workers):
                    task = self._tasks[names_by_index[heapq.heappop(ready)]]
                    running[executor.submit(self._execute, task, context)] = task

                if not running:
                    break

                done, _ = wait(list(running), return_when=FIRST_COMPLETED)
                for future in sorted(done, key=lambda f: order[running[f].name]):
                    task = running.pop(future)
                    try:
                        elapsed = future.result()
                    except TaskExecutionError as e:
                        logger.error(str(e))
                        if failure is None:
                            failure = e
                        continue

                    report.completed.append(task.name)
                    report.timings[task.name] = elapsed
                    for dependent in dependents[task.name]:
                        deps = blockers[dependent]
                        deps.discard(task.name)
                        if not deps:
                            heapq.heappush(ready, order[dependent])

                if failure is not None:
                    ready.clear()

        if failure is not None:
            raise failure
        return report

    @staticmethod
    def _execute(task: Task, context: Any) -> float:
        start = time.monotonic()
        if task.action is not None:
            logger.info(f"> Task :{task.name}")
            try:
                task.action(context)
            except Exception as e:
                raise TaskExecutionError(task.name, task.target, e) from e
        return time.monotonic() - start
