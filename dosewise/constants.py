"""
Application constants for DoseWise.
"""

# Blob store keys (persisted session data)
adherence_data_key = 'dosewise_data'
classifier_source_key = 'dosewise_model_url'

BLOB_KEYS = [
    adherence_data_key,
    classifier_source_key,
]

# Runtime control keys in the config table (written by the dashboard,
# watched by the running session)
detection_enabled_key = 'detection_enabled'
classifier_source_request_key = 'classifier_source_request'
reset_requested_key = 'reset_requested'
simulated_detection_key = 'simulated_detection'
enable_display_key = 'enable_display'
notifications_enabled_key = 'notifications_enabled'

# Document field names inside the adherence blob
DOC_ADHERENCE_LOG = 'adherenceLog'
DOC_CURRENT_STREAK = 'currentStreak'
DOC_TOTAL_TAKEN = 'totalPillsTaken'
DOC_TOTAL_SCHEDULED = 'totalPillsScheduled'
