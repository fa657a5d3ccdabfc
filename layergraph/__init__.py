"""
Layergraph: derives component USES edges from a typed code graph, checks
layering constraints, and exports hierarchical dependency views.
"""
