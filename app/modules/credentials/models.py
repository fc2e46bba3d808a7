# Database Models (Supabase table structure)
# These are reference models - actual tables are created in Supabase

"""
Table: external_service_credentials
- id: uuid (primary key)
- user_id: uuid (foreign key to auth.users)
- service_type: text ('ai_provider' | 'crm_system' | 'integration_platform')
- service_name: text ('openai', 'gemini', 'claude', 'hubspot', 'servicenow')
- display_name: text
- credentials_encrypted: jsonb ({field: hex ciphertext}); older rows hold one hex string
- encryption_metadata: jsonb ({field}_iv, {field}_auth_tag, algorithm, encrypted_at)
- configuration: jsonb (non-secret settings such as model or instance_url)
- is_active: boolean (default true)
- is_default: boolean (default false, at most one per user and service_type)
- test_status: text ('testing' | 'success' | 'failed', nullable)
- test_result: jsonb (last connection test result)
- last_tested_at: timestamptz
- created_at: timestamptz (default now())
- updated_at: timestamptz (default now())
"""
