"""EaseMail API - multi-tenant email workspace backend"""
