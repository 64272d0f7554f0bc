"""Domain layer: the merge engine and the ports its collaborators implement."""
