from siteintel.detectors.forms import DetectedForm, FormField, detect_forms
from siteintel.detectors.leadflow import LeadFlowEdge, LeadFlowGraph, LeadFlowNode, build_lead_flow
from siteintel.detectors.structure import BusinessStructure, detect_structure

__all__ = [
    "BusinessStructure",
    "DetectedForm",
    "FormField",
    "LeadFlowEdge",
    "LeadFlowGraph",
    "LeadFlowNode",
    "build_lead_flow",
    "detect_forms",
    "detect_structure",
]
