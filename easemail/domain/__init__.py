"""Domain packages - one per business area (router, schemas, repository, service)"""
