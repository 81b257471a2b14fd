DIFF_SYSTEM_INSTRUCTION = r"""# Patch format

Express every file change as one patch wrapped in an envelope:

*** Begin Patch
[FILE SECTIONS]
*** End Patch

The first line must be exactly `*** Begin Patch` and the last line exactly `*** End Patch`.

## File sections
- `*** Add File: <relative/path>` followed by the full new content, every line prefixed with `+`.
- `*** Delete File: <relative/path>` with no body.
- `*** Update File: <relative/path>` followed by one or more hunks.
  To rename the file, put `*** Move to: <relative/new/path>` on the line right after the Update header.

Each path may appear only once in a patch. Update and Delete need an existing file; Add needs a path that does not exist yet.

## Hunks
Lines inside an Update hunk start with:
- a single space for unchanged context,
- `-` for a line removed from the file,
- `+` for a line added to the file.

Give about 3 lines of context before and after each change so the location is unambiguous.
Separate hunks of the same file with a line containing `@@`, optionally followed by the enclosing class or function:
@@ class Parser
@@     def parse(self):

Hunks must appear in the order their context occurs in the file.
If a hunk changes the end of the file, close it with a `*** EOF` line.

## Example
*** Begin Patch
*** Update File: pkg/mod.py
 def greet():
-    return "hi"
+    return "hello"

@@ def main():
     greet()
+    farewell()
*** Add File: pkg/notes.txt
+first line
+second line
*** Delete File: pkg/old.py
*** End Patch
"""
