# Database Models (Supabase table structure)
# These are reference models - actual tables are created in Supabase

"""
Table: client_profiles
- id: uuid (primary key, default gen_random_uuid())
- user_id: uuid (foreign key to auth.users)
- name: text (company name)
- description: text ("<industry> profile for <company>")
- industry: text
- company_size: text
- profile_data: jsonb (full profile document, id stripped)
- markdown_content: text (rendered markdown, regenerated on every write)
- timeline_data: jsonb (nullable, cached timeline with scenario_type/generated_at/version)
- last_timeline_generated_at: timestamptz (nullable)
- opportunities_data: jsonb (nullable, cached opportunities with provider/generated_at/version)
- last_opportunities_generated_at: timestamptz (nullable)
- created_at: timestamptz (default now())
- updated_at: timestamptz (default now())

RLS: users may only read and write rows where user_id = auth.uid().
The API uses the service role key and filters by user_id itself.
"""
