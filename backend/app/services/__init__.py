# Services package init
"""
Inkwell Backend - Services Layer
==================================

What:  Business logic between routes (HTTP) and stores (persistence).
How:   Services receive their stores and collaborators at construction;
       create_app() builds one of each and puts them on app.state.

Service Inventory:
    - Humanizer / Detector (abstract): text transform contracts
    - RuleBasedHumanizer, RemoteHumanizer: humanize implementations
    - LocalHeuristicDetector, ScoringDetector: detection implementations
    - GPTZeroScorer, OriginalityScorer: external scorers behind circuit breakers
    - ProcessingService: quota, transform and usage accounting
    - AuthService: registration, login, profile, API keys
    - PaymentService: simulated plan purchase
    - UsageService: usage totals and history
"""
