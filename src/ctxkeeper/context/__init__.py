"""Context persistence: typed markdown documents stored per project.

Layout:
    ~/.shared-project-context/
    └── projects/
        └── {project}/
            ├── project-config.json           # Context types for this project
            ├── {type}/
            │   └── {identifier}.md           # One blob per document / log entry
            ├── templates/
            │   └── {template}.md             # Project copy of a template
            └── archive/
                └── {type}/{batch}/{file}.md  # Blobs moved away by reset

Identity rules live in `identity`, disk layout in `store`, per-type behavior in
`behaviors`, and `factory` binds a configured type name to its behavior.
"""
