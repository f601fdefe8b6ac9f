"""
Backend package for the Prayer Army request desk.

Public visitors submit prayer requests (with optional voice, image and
document attachments); administrators triage them, organise volunteers
into fellowships and track which members have prayed over each request.
Persistence, object storage and request numbers are delegated to an
external backend reached through the gateway and storage abstractions.
"""
