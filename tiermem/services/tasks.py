"""Names of the background tasks registered with the TaskScheduler."""

PROMOTE_FROM_SENSORY = "promote_from_sensory"
EXTRACT_AND_EMBED = "extract_and_embed"
CONSOLIDATION_WORKFLOW = "consolidation_workflow"
REFLECTION_WORKFLOW = "reflection_workflow"
PRUNING_WORKFLOW = "pruning_workflow"
