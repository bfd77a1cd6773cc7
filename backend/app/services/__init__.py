"""
Match workflow services.

Functions here take a Session, IDs and an explicit ``now``; they never read
HTTP request objects or the system clock. Anything that mutates a match goes
through a version compare-and-swap; status transitions use
``result_workflow.commit_transition`` so the version check, action
log and event publication happen together.
"""
