# src/stagecraft/engine/__init__.py
"""Execution engine: ordering, the safe filter expression evaluator and preview runs.

Import submodules directly (e.g., stagecraft.engine.orchestrator); this
package stays import-light so executors can use the expression parser
without pulling in the orchestrator.
"""
