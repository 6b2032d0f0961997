"""Base classes for engine blocks.

A block wraps one pure engine so it can run inside a dependency graph:
- Block abstract base class
- BlockContext for passing inputs and results between blocks
- BlockExecutor for dependency resolution and execution
- Topological sort for DAG execution order
"""

import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)


# =============================================================================
# Block Context
# =============================================================================

@dataclass
class BlockContext:
    """Key/value store shared by the blocks of one run.

    Blocks read their inputs from the context and write their results to it.

    Example:
        context = BlockContext()
        context.set("lbo_inputs", lbo_inputs)

        LBOBlock().execute(context)

        results = context.get("lbo_results")
        projections_df = context.get("lbo_projections")
    """

    _data: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str) -> Any:
        """Get value from context.

        Raises:
            KeyError: If key not found in context
        """
        if key not in self._data:
            raise KeyError(f"Key '{key}' not found in context. Available keys: {list(self._data.keys())}")
        return self._data[key]

    def get_optional(self, key: str, default: Any = None) -> Any:
        """Get value from context, or default when the key is absent."""
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def has(self, key: str) -> bool:
        return key in self._data

    def keys(self) -> List[str]:
        return list(self._data.keys())


# =============================================================================
# Block Base Class
# =============================================================================

class Block(ABC):
    """Abstract base class for engine blocks.

    A Block:
    1. Declares the context keys it reads (inputs)
    2. Declares the context keys it writes (outputs)
    3. Calls its engine in execute()

    Engines never call one another; any chaining happens through the context.

    Subclass example:
        class DCFBlock(Block):
            def __init__(self, inputs_key: str = "dcf_inputs"):
                self.inputs_key = inputs_key

            def inputs(self) -> List[str]:
                return [self.inputs_key]

            def outputs(self) -> List[str]:
                return ["dcf_results", "dcf_cash_flows"]

            def execute(self, context: BlockContext) -> None:
                results = run_dcf(context.get(self.inputs_key))
                context.set("dcf_results", results)
                context.set("dcf_cash_flows", cash_flows_frame(results))
    """

    @abstractmethod
    def inputs(self) -> List[str]:
        """Context keys this block reads."""
        pass

    @abstractmethod
    def outputs(self) -> List[str]:
        """Context keys this block writes."""
        pass

    @abstractmethod
    def execute(self, context: BlockContext) -> None:
        """Read inputs from context, run the engine, write outputs to context.

        Args:
            context: BlockContext with inputs available

        Raises:
            KeyError: If required inputs not available in context
            DealModelError: Whatever the wrapped engine raises
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(inputs={self.inputs()}, outputs={self.outputs()})"


# =============================================================================
# Dependency Resolution
# =============================================================================

class CircularDependencyError(Exception):
    """Raised when blocks have circular dependencies."""
    pass


def topological_sort(blocks: List[Block]) -> List[Block]:
    """Sort blocks so that every producer runs before its consumers.

    Kahn's algorithm. Inputs that no block produces must be supplied by the
    initial context. Blocks with no ordering constraint keep their given
    order.

    Raises:
        ValueError: If two blocks declare the same output key
        CircularDependencyError: If blocks have circular dependencies

    Example:
        block1.outputs() = ["A"]
        block2.inputs() = ["A"], outputs() = ["B"]
        block3.inputs() = ["B"], outputs() = ["C"]

        topological_sort([block3, block1, block2])
        -> [block1, block2, block3]
    """
    producers: Dict[str, Block] = {}
    for block in blocks:
        for output_key in block.outputs():
            if output_key in producers:
                raise ValueError(
                    f"Multiple blocks produce '{output_key}': "
                    f"{producers[output_key]} and {block}"
                )
            producers[output_key] = block

    in_degree: Dict[Block, int] = {block: 0 for block in blocks}
    dependents: Dict[Block, List[Block]] = {block: [] for block in blocks}
    for block in blocks:
        for input_key in block.inputs():
            producer = producers.get(input_key)
            if producer is not None:
                dependents[producer].append(block)
                in_degree[block] += 1

    ready: Deque[Block] = deque(block for block in blocks if in_degree[block] == 0)
    ordered: List[Block] = []
    while ready:
        current = ready.popleft()
        ordered.append(current)
        for dependent in dependents[current]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                ready.append(dependent)

    if len(ordered) != len(blocks):
        stuck = [block for block in blocks if in_degree[block] > 0]
        raise CircularDependencyError(
            f"Circular dependency detected among blocks: {stuck}"
        )

    return ordered


# =============================================================================
# Block Executor
# =============================================================================

class BlockExecutor:
    """Executes blocks in dependency order.

    The executor:
    1. Resolves dependencies using topological sort
    2. Checks each block's inputs are in the context before it runs
    3. Checks each block wrote every declared output
    4. Returns the context with all outputs

    Example:
        executor = BlockExecutor([WaterfallBlock(), LBOBlock()])
        context = BlockContext()
        context.set("lbo_inputs", lbo_inputs)
        context.set("waterfall_inputs", waterfall_inputs)

        executor.execute(context)

        lbo_results = context.get("lbo_results")
        by_participant_df = context.get("waterfall_by_participant")
    """

    def __init__(self, blocks: List[Block]):
        """Initialize executor with blocks (in any order)."""
        self.blocks = blocks
        self._sorted_blocks: Optional[List[Block]] = None

    def execute(self, context: BlockContext) -> BlockContext:
        """Execute all blocks in dependency order.

        Raises:
            CircularDependencyError: If blocks have circular dependencies
            KeyError: If required inputs not available in context
            ValueError: If a block did not write a declared output
        """
        if self._sorted_blocks is None:
            self._sorted_blocks = topological_sort(self.blocks)

        for block in self._sorted_blocks:
            self._validate_inputs(block, context)
            logger.debug("Executing %r", block)
            block.execute(context)
            self._validate_outputs(block, context)

        return context

    def _validate_inputs(self, block: Block, context: BlockContext) -> None:
        for input_key in block.inputs():
            if not context.has(input_key):
                raise KeyError(
                    f"Block {block} requires input '{input_key}' but it's not in context. "
                    f"Available keys: {context.keys()}"
                )

    def _validate_outputs(self, block: Block, context: BlockContext) -> None:
        for output_key in block.outputs():
            if not context.has(output_key):
                raise ValueError(
                    f"Block {block} declared output '{output_key}' but didn't write it to context"
                )
