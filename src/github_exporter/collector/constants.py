"""Metric identity shared by the collector modules."""

NAMESPACE = "github_exporter"
SUBSYSTEM = "issue"

LABEL_LABEL = "label"
LABEL_LABELS = "labels"
LABEL_NUMBER = "number"
LABEL_ORG = "org"
LABEL_REPO = "repo"
LABEL_STATE = "state"


def build_fq_name(name: str) -> str:
    """github_exporter_issue_<name>"""
    return f"{NAMESPACE}_{SUBSYSTEM}_{name}"
