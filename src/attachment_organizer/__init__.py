"""Mail Attachment Organizer package.

Objective:
    Provide a Python implementation of an attachment harvesting workflow:
    - Search Gmail for messages with attachments from a sender, domain or
      company name.
    - Flatten every nested attachment out of each message's MIME part tree.
    - Categorize attachments by filename (date path, category, subcategory).
    - Create a folder hierarchy in Google Drive and upload the attachments
      into it, reporting progress as the batch proceeds.

Key modules:
    - :mod:`src.attachment_organizer.criterion`:
        Sender criterion validation and search predicate construction.
    - :mod:`src.attachment_organizer.gmail_client` /
      :mod:`src.attachment_organizer.drive_client`:
        REST wrappers for the mail store and the file store.
    - :mod:`src.attachment_organizer.harvester`:
        Paginated message search.
    - :mod:`src.attachment_organizer.extractor` /
      :mod:`src.attachment_organizer.metadata`:
        Part-tree flattening and header normalization.
    - :mod:`src.attachment_organizer.file_categorizer`:
        Filename heuristics.
    - :mod:`src.attachment_organizer.folder_organizer`:
        Folder creation and sequential uploads with progress.
    - :mod:`src.attachment_organizer.analyzer`:
        Natural-language analysis of stored attachments (Groq).
    - :mod:`src.attachment_organizer.orchestrator`:
        End-to-end workflow coordination.
    - :mod:`src.attachment_organizer.cli` / :mod:`src.attachment_organizer.webapp`:
        User-facing entrypoints.
"""

__version__ = "0.1.0"
