"""Livelist - shared checklist sync and membership engine"""
