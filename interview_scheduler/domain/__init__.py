"""
Scheduling domain: availability matrices, quorum aggregation, the event
data model and the Event aggregate.
"""
