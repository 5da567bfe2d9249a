"""Build and compile the crawl pipeline StateGraph.

The graph topology is linear, with one early exit:

    START → fetch ─┬─→ parse → structure → forms → graph → score → merge → END
                   └─→ END (no page retrieved)

All nodes are created as closures via the ``make_*`` factories in
``siteintel.pipeline.nodes``, so every node shares the session's context
without it appearing in the state bag.
"""

from __future__ import annotations

from langgraph.graph import END, START, StateGraph

from siteintel.pipeline.nodes import (
    StageContext,
    make_fetch,
    make_forms,
    make_graph,
    make_merge,
    make_parse,
    make_score,
    make_structure,
)
from siteintel.pipeline.state import PipelineState

STAGE_ORDER = ("fetch", "parse", "structure", "forms", "graph", "score", "merge")


def build_pipeline(ctx: StageContext):
    """Compile and return the crawl ``StateGraph`` for one session."""
    graph = StateGraph(PipelineState)

    graph.add_node("fetch", make_fetch(ctx))
    graph.add_node("parse", make_parse(ctx))
    graph.add_node("structure", make_structure(ctx))
    graph.add_node("forms", make_forms(ctx))
    graph.add_node("graph", make_graph(ctx))
    graph.add_node("score", make_score(ctx))
    graph.add_node("merge", make_merge(ctx))

    graph.add_edge(START, "fetch")

    def _route_fetch(state: PipelineState) -> str:
        """Stop right after fetch when nothing was retrieved."""
        return "parse" if state.get("pages") else END

    graph.add_conditional_edges("fetch", _route_fetch)

    for current, following in zip(STAGE_ORDER[1:], STAGE_ORDER[2:]):
        graph.add_edge(current, following)
    graph.add_edge("merge", END)

    return graph.compile()
