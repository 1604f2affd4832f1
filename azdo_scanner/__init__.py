"""Azure DevOps governance scanner: az CLI queries, branch policy grading and scan orchestration."""
