"""EduFlex class-management service.

Feature modules (attendance, fees, tutes, history, ...) sit on a thin Flask
controller layer and service/repository layers over a generic record store.
"""
