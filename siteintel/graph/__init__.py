from siteintel.graph.builder import build_insights, build_knowledge_graph
from siteintel.graph.models import ROOT_ID, GraphEdge, GraphNode, Insights, KnowledgeGraph

__all__ = [
    "ROOT_ID",
    "GraphEdge",
    "GraphNode",
    "Insights",
    "KnowledgeGraph",
    "build_insights",
    "build_knowledge_graph",
]
