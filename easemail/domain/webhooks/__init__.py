"""Webhooks domain - organization webhooks, delivery history and retries"""
