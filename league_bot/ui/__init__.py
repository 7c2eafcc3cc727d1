"""
UI Module - Discord UI Components

Interactive components for the league bot:
- OfferResponseView: Accept/decline buttons on a delivered contract offer
- DemandConfirmationView: Confirm/cancel buttons for a release demand
"""
