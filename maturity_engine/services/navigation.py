"""
Navigation tree — dashboard → diagnostics → controls, with scores.

Built purely from essential data and score lookups.  Never triggers a
detailed fetch; that happens only when a control node is expanded.
"""

from __future__ import annotations

from typing import Callable, Optional

from maturity_engine.models.enums import NodeType
from maturity_engine.models.schemas import ControlEntry, EssentialBundle, MaturityResult, TreeNode
from maturity_engine.scoring.weight_tables import NO_DATA_COLOR, NO_DATA_LABEL


def _decorate(node: TreeNode, result: Optional[MaturityResult]) -> TreeNode:
    if result is None:
        node.has_data = False
        node.score = 0.0
        node.maturity_label = NO_DATA_LABEL
        node.color = NO_DATA_COLOR
    else:
        node.has_data = True
        node.score = result.score
        node.maturity_label = result.label
        node.color = result.color
    return node


def build_tree(
    bundle: EssentialBundle,
    control_maturity: Callable[[ControlEntry], Optional[MaturityResult]],
    diagnostic_maturity: Callable[[int], Optional[MaturityResult]],
    program_maturity: Optional[MaturityResult],
) -> TreeNode:
    diagnostic_nodes = []
    for diagnostic in bundle.diagnostics:
        controls = bundle.controls_by_diagnostic.get(diagnostic.id, [])
        control_nodes = [
            _decorate(
                TreeNode(
                    id=f"{NodeType.CONTROL.value}-{control.id}",
                    type=NodeType.CONTROL,
                    label=f"{control.number} - {control.name}",
                    description=control.text,
                    data={
                        "control_id": control.id,
                        "diagnostic_id": control.diagnostic_id,
                        "incc_level": control.incc_level,
                        "measure_count": len(bundle.measure_ids_by_control.get(control.id, [])),
                    },
                ),
                control_maturity(control),
            )
            for control in controls
        ]
        diagnostic_nodes.append(
            _decorate(
                TreeNode(
                    id=f"{NodeType.DIAGNOSTIC.value}-{diagnostic.id}",
                    type=NodeType.DIAGNOSTIC,
                    label=diagnostic.description,
                    data={"diagnostic_id": diagnostic.id, "control_count": len(controls)},
                    children=control_nodes,
                ),
                diagnostic_maturity(diagnostic.id),
            )
        )

    return _decorate(
        TreeNode(
            id=NodeType.DASHBOARD.value,
            type=NodeType.DASHBOARD,
            label="Dashboard",
            data={"program_id": bundle.program_id},
            children=diagnostic_nodes,
        ),
        program_maturity,
    )
