from .flows import EXAMPLE_FLOWS, LEARNING_FLOWS, FlowReconciler, FlowResult
from .topology import TopologyReconciler
