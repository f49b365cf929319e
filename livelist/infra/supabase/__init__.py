"""Supabase infrastructure module"""
from .client import get_service_role_client, get_supabase_client, reset_supabase_client

__all__ = ['get_supabase_client', 'get_service_role_client', 'reset_supabase_client']
