"""Contacts domain - address book and recipient template variables"""
