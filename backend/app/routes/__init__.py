# Routes package init
"""
Inkwell Backend - API Routes Package
======================================

What:  HTTP route handlers that accept requests and return responses.
How:   Each route module handles one resource; handlers stay thin and
       delegate to the services on app.state.

Route Inventory:
    - auth.py:        POST /api/auth/register, POST /api/auth/login,
                      GET  /api/auth/me, PUT /api/auth/api-keys
    - processing.py:  POST /echo_text, POST /humanize_text, POST /detect_ai
    - payment.py:     POST /payment
    - usage.py:       GET  /usage
    - health.py:      GET  /, GET /health
"""
