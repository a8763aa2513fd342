# Streams Module
# Read model over the on-chain payroll streams
#
# Components:
# - schemas.py: StreamSnapshot, AccrualResult, StreamStatus
# - vesting.py: Stepped hourly accrual and invariant cross-checks
# - activity.py: Emergency-withdrawal countdown
# - overview.py: Employee-facing stream totals
# - repository.py: Snapshot source and event log over the stream mirror
