"""
SLA Module
==========

Bounded Context for Service Level Agreement due-date calculation.

Responsibilities:
- Resolve whether a date is a holiday for a unit, department or globally
- Decide whether an instant is inside business hours
- Advance instants by business minutes and measure business time
- Select the most specific SLA policy for a ticket
- Administer holidays and SLA policies over the HTTP API
"""
