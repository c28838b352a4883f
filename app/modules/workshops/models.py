# Supabase tables: workshops, workshop_steps
# This file documents the expected database schema
# Actual operations are handled via app.database.supabase_client.SupabaseDocumentStore
#
# The "Workshop Report" step is never stored. It is derived from the lock states
# every time steps are loaded (see progression.py).

"""
Expected Supabase table structure:

workshops
- id: text (primary key)
- name: text (not null)
- created_by: uuid (not null) - auth user id of the creator
- workspace_id: text (nullable)
- participants: jsonb (not null, default '[]') - invited e-mail addresses
- is_public: boolean (not null, default false)
- share_token: text (nullable)
- status: text (not null, default 'in_progress') - values: in_progress, completed
- current_step: integer (not null, default 0) - counted steps that are locked
- total_steps: integer (not null, default 0) - counted steps
- created_at: timestamptz
- updated_at: timestamptz

workshop_steps
- id: text (primary key)
- workshop_id: text (foreign key to workshops.id, on delete cascade)
- step_number: integer (not null, unique per workshop_id)
- name: text (not null)
- content: jsonb (not null, default '{}') - owned by the template editor
- is_locked: boolean (nullable; missing means unlocked)
- is_counted: boolean (nullable; missing means counted unless name = 'Agenda')
- updated_at: timestamptz

Batch writes call one function so they run in a single transaction:

create or replace function commit_document_batch(writes jsonb) returns void
language plpgsql as $$
declare w jsonb;
begin
  for w in select * from jsonb_array_elements(writes) loop
    if w->>'op' = 'set' then
      execute format(
        'insert into %I select * from jsonb_populate_record(null::%I, $1)
         on conflict (id) do update set (%s) = (select %s from jsonb_populate_record(null::%I, $1))',
        w->>'table', w->>'table',
        (select string_agg(quote_ident(k), ',') from jsonb_object_keys(w->'data') k),
        (select string_agg(quote_ident(k), ',') from jsonb_object_keys(w->'data') k),
        w->>'table')
      using (w->'data') || jsonb_build_object('id', w->>'id');
    elsif w->>'op' = 'update' then
      execute format(
        'update %I set (%s) = (select %s from jsonb_populate_record(null::%I, $1)) where id = $2',
        w->>'table',
        (select string_agg(quote_ident(k), ',') from jsonb_object_keys(w->'data') k),
        (select string_agg(quote_ident(k), ',') from jsonb_object_keys(w->'data') k),
        w->>'table')
      using w->'data', w->>'id';
      if not found then
        raise exception 'document %/% not found', w->>'table', w->>'id' using errcode = 'P0002';
      end if;
    end if;
  end loop;
end;
$$;
"""

WORKSHOPS_COLLECTION = "workshops"


def steps_collection(workshop_id: str) -> str:
    return f"{WORKSHOPS_COLLECTION}/{workshop_id}/steps"
