#!/usr/bin/env python3
"""
Operation Registry

Discovers batch operations under operations/<pkg>/operation.py and keeps
them alongside read-only commands (such as `show`) that share the CLI's
operation slot but run outside the batch orchestrator.
"""

import logging
from importlib import import_module
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from operations.base import OperationBase

logger = logging.getLogger(__name__)

OPERATIONS_DIR = Path(__file__).parent


class Command:
    """A named handler that runs over handles without a batch"""

    def __init__(self, name: str, description: str, handler: Callable[[list], int]):
        self.name = name
        self.description = description
        self.handler = handler

    def __call__(self, handles: list) -> int:
        return self.handler(handles)


class OperationRegistry:
    """Registry for batch operations and plain commands"""

    def __init__(self):
        self.operations: List[type] = []
        self.commands: Dict[str, Command] = {}

    def register(self, operation: type) -> None:
        """Register an operation class

        Args:
            operation: A class (not instance) that inherits from OperationBase

        Raises:
            TypeError: If operation is not a class or doesn't inherit from OperationBase
            ValueError: If the name is already taken by an operation or command
        """
        if not isinstance(operation, type):
            raise TypeError(
                f"Operation must be a class (not an instance), got {type(operation).__name__}"
            )

        if not issubclass(operation, OperationBase):
            raise TypeError(
                f"Operation class must inherit from OperationBase, got {operation.__name__}"
            )

        self._check_free(operation.get_name())
        self.operations.append(operation)

    def register_command(
        self, name: str, description: str, handler: Callable[[list], int]
    ) -> Command:
        """Register a command that takes the resolved handles and returns an exit code

        Raises:
            ValueError: If the name is already taken by an operation or command
        """
        self._check_free(name)
        command = Command(name, description, handler)
        self.commands[name.lower()] = command
        return command

    def discover(self, operations_dir: Path = OPERATIONS_DIR, package: str = "operations") -> List[Tuple[str, str]]:
        """Import every <pkg>/operation.py under operations_dir and register it.

        Returns:
            (package, reason) for each operation package that failed to load
        """
        failed = []
        for pkg_dir in sorted(
            (d for d in operations_dir.iterdir() if d.is_dir() and (d / "operation.py").exists()),
            key=lambda x: x.name,
        ):
            pkg = pkg_dir.name
            try:
                module = import_module(f"{package}.{pkg}.operation")
                if hasattr(module, "get_operation"):
                    self.register(module.get_operation())
                else:
                    failed.append((pkg, "No get_operation() function found"))
            except ImportError as e:
                failed.append((pkg, f"Import error: {e}"))
            except Exception as e:
                failed.append((pkg, f"Error: {e}"))

        logger.debug(f"Loaded {self.get_operation_count()} operation(s)")
        return failed

    def get_all_operations(self) -> List[type]:
        """Get all registered operations sorted by name"""
        return sorted(self.operations, key=lambda op: op.get_name())

    def get_operation_count(self) -> int:
        return len(self.operations)

    def get_by_name(self, name: str) -> Optional[type]:
        """Find operation by name (case-insensitive).

        Returns:
            Matching operation class, or None if not found
        """
        name_lower = name.lower()
        for operation in self.operations:
            if operation.get_name().lower() == name_lower:
                return operation
        return None

    def get_command(self, name: str) -> Optional[Command]:
        return self.commands.get(name.lower())

    def describe_all(self) -> List[Tuple[str, str]]:
        """(name, description) for every operation and command, sorted by name"""
        entries = [(op.get_name(), op.get_description()) for op in self.operations]
        entries.extend((c.name, c.description) for c in self.commands.values())
        return sorted(entries)

    def _check_free(self, name: str) -> None:
        if self.get_by_name(name) is not None or name.lower() in self.commands:
            raise ValueError(f"Operation already registered: {name}")
