# PUBLIC_INTERFACE
"""
Pay Scale Backend.

- core: settings, logging, observability, errors and field encryption
- payscales: pay-scale and personnel-grade models, stores, sessions and routers
- api.main: FastAPI app instance
- run: module runner that starts uvicorn
"""
